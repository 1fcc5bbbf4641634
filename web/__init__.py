"""Web package: Flask JSON API served on the main asyncio loop."""

from .app import create_app

__all__ = ["create_app"]
