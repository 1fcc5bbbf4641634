"""Helpers shared by the API blueprints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import current_app, request

from core.exceptions import ValidationError
from services import (
    ActivityService,
    CommissionCalculator,
    LotteryService,
    NotificationTracker,
    SaleAllocator,
    WinnerResolver,
    run_coroutine_sync,
)

sale_allocator = SaleAllocator()
winner_resolver = WinnerResolver()
lottery_service = LotteryService()


def commission_calculator() -> CommissionCalculator:
    return CommissionCalculator(trend_clamp=current_app.config.get("TREND_CLAMP", 100.0))


def notification_tracker() -> NotificationTracker:
    return NotificationTracker(trend_clamp=current_app.config.get("TREND_CLAMP", 100.0))


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def optional_int_arg(name: str) -> Optional[int]:
    value = request.args.get(name)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", {"field": name}) from None


def require_actor(data: Dict[str, Any], field: str) -> int:
    """Caller identity sent explicitly in the body (``sellerId`` / ``operatorId``)."""
    value = data.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, str)) or not str(value).isdigit():
        raise ValidationError(f"{field} is required", {"field": field})
    return int(value)


def record_activity(action: str, details: str, severity: str = "info", actor_id: Optional[int] = None) -> None:
    try:
        run_coroutine_sync(ActivityService.log(action, details, severity, actor_id))
    except Exception as err:
        current_app.logger.error(f"Failed to log activity '{action}': {err}")
