"""Commission reports."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from flask import Blueprint, jsonify, request
from flask_login import login_required

from core.exceptions import ValidationError
from services import run_coroutine_sync
from web.routes.common import commission_calculator, optional_int_arg


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _datetime_arg(name: str) -> Optional[datetime]:
    value = request.args.get(name)
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 timestamp", {"field": name}) from None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@reports_bp.route("/sellers/<int:seller_id>/summary", methods=["GET"])
@login_required
def seller_summary(seller_id: int):
    return jsonify(run_coroutine_sync(commission_calculator().seller_summary(seller_id)))


@reports_bp.route("/commissions", methods=["GET"])
@login_required
def commissions():
    rows = run_coroutine_sync(commission_calculator().report_by_seller(
        lottery_id=optional_int_arg("lotteryId"),
        since=_datetime_arg("since"),
        until=_datetime_arg("until"),
    ))
    return jsonify({
        "sellers": [row.to_dict() for row in rows],
        "totalCommission": round(sum(row.commission for row in rows), 2),
    })
