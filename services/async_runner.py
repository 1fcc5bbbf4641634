"""Run coroutines on the main asyncio loop from Flask worker threads."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar


_loop: Optional[asyncio.AbstractEventLoop] = None
T = TypeVar("T")


def set_main_loop(loop: Optional[asyncio.AbstractEventLoop]) -> None:
    global _loop
    _loop = loop


def run_coroutine_sync(coro: Awaitable[T], timeout: Optional[float] = None) -> T:
    """Block the calling thread until ``coro`` finishes on the main loop.

    Exceptions raised by the coroutine propagate unchanged.
    """
    if _loop is None:
        raise RuntimeError("Asyncio loop is not initialized")
    future = asyncio.run_coroutine_threadsafe(coro, _loop)
    return future.result(timeout)
