"""Lottery, sale and winner endpoints."""

from __future__ import annotations

import random

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from services import run_coroutine_sync
from web.rate_limit import rate_limited, sell_limiter
from web.routes.common import (
    commission_calculator,
    json_body,
    lottery_service,
    record_activity,
    require_actor,
    sale_allocator,
    winner_resolver,
)


lotteries_bp = Blueprint("lotteries", __name__, url_prefix="/api/lotteries")


def _lottery_payload(lottery, sold: int) -> dict:
    return lottery.to_dict(sold_count=sold)


@lotteries_bp.route("", methods=["POST"])
@login_required
def create_lottery():
    data = json_body()
    lottery = run_coroutine_sync(lottery_service.create_lottery(
        title=data.get("title"),
        description=data.get("description", ""),
        ticket_count=data.get("ticketCount"),
        ticket_price=data.get("ticketPrice"),
        commission_per_ticket=data.get("commissionPerTicket", 0),
        prizes=data.get("prizes"),
        created_by=data.get("createdBy"),
    ))
    record_activity("Lottery Created", f"Lottery '{lottery.title}' created", "success", lottery.created_by)
    return jsonify({"message": "Lottery created successfully", "lottery": _lottery_payload(lottery, 0)}), 201


@lotteries_bp.route("", methods=["GET"])
@login_required
def list_lotteries():
    lotteries = run_coroutine_sync(lottery_service.list_lotteries(
        status=request.args.get("status") or None,
        lottery_type=request.args.get("type") or None,
        search=request.args.get("search", ""),
    ))
    sold = run_coroutine_sync(lottery_service.sold_counts(lotteries))
    return jsonify([_lottery_payload(lottery, sold.get(lottery.id, 0)) for lottery in lotteries])


@lotteries_bp.route("/ended-without-winners", methods=["GET"])
@login_required
def ended_without_winners():
    lotteries = run_coroutine_sync(winner_resolver.awaiting_resolution())
    return jsonify([lottery.to_dict() for lottery in lotteries])


@lotteries_bp.route("/<int:lottery_id>", methods=["GET"])
@login_required
def get_lottery(lottery_id: int):
    lottery = run_coroutine_sync(lottery_service.get_lottery(lottery_id))
    sold = run_coroutine_sync(lottery_service.sold_counts([lottery]))
    return jsonify(_lottery_payload(lottery, sold.get(lottery_id, 0)))


@lotteries_bp.route("/<int:lottery_id>", methods=["PUT"])
@login_required
def update_lottery(lottery_id: int):
    lottery = run_coroutine_sync(lottery_service.update_lottery(lottery_id, json_body()))
    record_activity("Lottery Updated", f"Lottery '{lottery.title}' updated")
    sold = run_coroutine_sync(lottery_service.sold_counts([lottery]))
    return jsonify({"message": "Lottery updated successfully", "lottery": _lottery_payload(lottery, sold.get(lottery_id, 0))})


@lotteries_bp.route("/<int:lottery_id>/close", methods=["POST"])
@login_required
def close_lottery(lottery_id: int):
    lottery = run_coroutine_sync(lottery_service.close_lottery(lottery_id))
    record_activity("Lottery Closed", f"Lottery '{lottery.title}' ended", "info")
    return jsonify({"message": "Lottery closed", "lottery": lottery.to_dict()})


@lotteries_bp.route("/<int:lottery_id>", methods=["DELETE"])
@login_required
def delete_lottery(lottery_id: int):
    run_coroutine_sync(lottery_service.delete_lottery(lottery_id))
    record_activity("Lottery Deleted", f"Lottery {lottery_id} deleted", "warning")
    return jsonify({"message": "Lottery deleted successfully"})


@lotteries_bp.route("/<int:lottery_id>/sell-ticket", methods=["POST"])
@login_required
@rate_limited(sell_limiter, "sell")
def sell_ticket(lottery_id: int):
    data = json_body()
    seller_id = require_actor(data, "sellerId")
    ticket = run_coroutine_sync(sale_allocator.sell(
        lottery_id,
        data.get("ticketNumber"),
        data.get("customerName"),
        data.get("customerPhone"),
        seller_id,
    ))
    record_activity(
        "Ticket Sold",
        f"Ticket #{ticket.ticket_number} sold for lottery '{ticket.lottery_title}'",
        "success",
        seller_id,
    )
    return jsonify({"message": "Ticket sold successfully", "ticket": ticket.to_dict()}), 201


@lotteries_bp.route("/<int:lottery_id>/sold-tickets", methods=["GET"])
@login_required
def sold_tickets(lottery_id: int):
    numbers = run_coroutine_sync(sale_allocator.list_sold(lottery_id))
    interval = current_app.config.get("POLL_INTERVAL_MS", 4500)
    jitter = current_app.config.get("POLL_JITTER_MS", 500)
    return jsonify({
        "lotteryId": lottery_id,
        "soldTicketNumbers": numbers,
        "pollAfterMs": interval + random.randint(-jitter, jitter),
    })


def _resolve(lottery_id: int, edit_mode: bool):
    data = json_body()
    lottery = run_coroutine_sync(winner_resolver.resolve(
        lottery_id,
        data.get("tiktokLink") or data.get("tiktokStreamLink"),
        data.get("winningTickets"),
        edit_mode=edit_mode,
    ))
    action = "Winners Updated" if edit_mode else "Winners Entered"
    record_activity(
        action,
        f"Winning tickets {lottery.winning_ticket_numbers} for lottery '{lottery.title}'",
        "success",
        data.get("operatorId"),
    )
    return jsonify({"message": f"{action} successfully", "lottery": lottery.to_dict()})


@lotteries_bp.route("/<int:lottery_id>/enter-winners", methods=["POST"])
@login_required
def enter_winners(lottery_id: int):
    return _resolve(lottery_id, edit_mode=False)


@lotteries_bp.route("/<int:lottery_id>/update-winners", methods=["PUT"])
@login_required
def update_winners(lottery_id: int):
    return _resolve(lottery_id, edit_mode=True)


@lotteries_bp.route("/<int:lottery_id>/sales-summary", methods=["GET"])
@login_required
def sales_summary(lottery_id: int):
    summary = run_coroutine_sync(commission_calculator().lottery_sales_summary(lottery_id))
    return jsonify(summary.to_dict())
