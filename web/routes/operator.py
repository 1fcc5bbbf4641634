"""Operator SMS queues and acknowledgments."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from services import run_coroutine_sync
from web.routes.common import json_body, notification_tracker, optional_int_arg, record_activity


operator_bp = Blueprint("operator", __name__, url_prefix="/api/operator")


@operator_bp.route("/pending-sms-tickets", methods=["GET"])
@login_required
def pending_sms_tickets():
    tickets = run_coroutine_sync(
        notification_tracker().pending_sale_notifications(optional_int_arg("lotteryId"))
    )
    return jsonify([ticket.to_dict() for ticket in tickets])


@operator_bp.route("/pending-winner-sms", methods=["GET"])
@login_required
def pending_winner_sms():
    queues = run_coroutine_sync(
        notification_tracker().pending_winner_notifications(optional_int_arg("lotteryId"))
    )
    return jsonify({
        "winnerTickets": [ticket.to_dict() for ticket in queues["winner_tickets"]],
        "nonWinnerTickets": [ticket.to_dict() for ticket in queues["non_winner_tickets"]],
    })


@operator_bp.route("/tickets/<int:ticket_id>/mark-sms-sent", methods=["PUT"])
@login_required
def mark_sms_sent(ticket_id: int):
    ticket = run_coroutine_sync(notification_tracker().mark_sale_sent(ticket_id))
    record_activity(
        "SMS Sent",
        f"Sale SMS acknowledged for ticket {ticket.unique_ticket_code}",
        "info",
        json_body().get("operatorId"),
    )
    return jsonify({"message": "Ticket marked as SMS sent", "ticket": ticket.to_dict()})


@operator_bp.route("/tickets/<int:ticket_id>/mark-winner-sms-sent", methods=["PUT"])
@login_required
def mark_winner_sms_sent(ticket_id: int):
    ticket = run_coroutine_sync(notification_tracker().mark_winner_sent(ticket_id))
    record_activity(
        "Winner SMS Sent",
        f"Winner SMS acknowledged for ticket {ticket.unique_ticket_code}",
        "info",
        json_body().get("operatorId"),
    )
    return jsonify({"message": "Ticket marked as winner SMS sent", "ticket": ticket.to_dict()})


@operator_bp.route("/dashboard-stats", methods=["GET"])
@login_required
def dashboard_stats():
    return jsonify(run_coroutine_sync(notification_tracker().operator_stats()))
