"""Ticket administration, winners and activity feed."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from services import ActivityService, run_coroutine_sync
from web.routes.common import lottery_service, optional_int_arg, record_activity, winner_resolver


tickets_bp = Blueprint("tickets", __name__, url_prefix="/api")


@tickets_bp.route("/tickets/<int:ticket_id>", methods=["DELETE"])
@login_required
def delete_ticket(ticket_id: int):
    ticket = run_coroutine_sync(lottery_service.delete_ticket(ticket_id))
    record_activity("Ticket Deleted", f"Ticket {ticket.unique_ticket_code} deleted", "warning")
    return jsonify({"message": "Ticket deleted successfully", "ticket": ticket.to_dict()})


@tickets_bp.route("/winners", methods=["GET"])
@login_required
def winners():
    lottery_id = optional_int_arg("lotteryId")
    rows = run_coroutine_sync(winner_resolver.list_winners(lottery_id))
    grouped = {}
    for row in rows:
        grouped.setdefault(row.lottery_id, {
            "lotteryId": row.lottery_id,
            "lottery": row.lottery_title,
            "winners": [],
        })["winners"].append(row.to_dict())
    return jsonify(list(grouped.values()))


@tickets_bp.route("/activities", methods=["GET"])
@login_required
def activities():
    limit = request.args.get("limit", default=20, type=int)
    entries = run_coroutine_sync(ActivityService.recent(limit))
    return jsonify([entry.to_dict() for entry in entries])
