"""Tests for commission calculation and reports."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import NotFoundError
from database import SellerRepository
from services import CommissionCalculator, LotteryService, SaleAllocator, compute_trend


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("current, previous, expected", [
    (15, 10, 50.0),
    (5, 10, -50.0),
    (1, 3, -66.67),
    (10, 10, 0.0),
    (0, 0, 0.0),
    (4, 0, 100.0),
])
def test_compute_trend(current, previous, expected):
    """Test percentage change with the zero-base clamp."""
    assert compute_trend(current, previous) == expected


def test_trend_clamp_is_configurable():
    assert compute_trend(3, 0, clamp=999.0) == 999.0
    assert CommissionCalculator(trend_clamp=250.0).trend(1, 0) == 250.0


@pytest.mark.asyncio
async def test_staff_and_agent_commission_models(make_seller, make_lottery):
    """Test staff earn the flat amount, agents a percentage of the price; never both."""
    staff = await make_seller()
    agent = await make_seller(role="agent", commission_rate=10.0)
    lottery = await make_lottery(ticket_price=200.0, commission_per_ticket=15.0)
    allocator = SaleAllocator()
    await allocator.sell(lottery.id, 1, "A", "0911000001", staff.id)
    await allocator.sell(lottery.id, 2, "B", "0911000002", staff.id)
    await allocator.sell(lottery.id, 3, "C", "0911000003", agent.id)

    rows = {row.seller_id: row for row in await CommissionCalculator().report_by_seller(lottery.id)}

    assert rows[staff.id].tickets_sold == 2
    assert rows[staff.id].amount_collected == 400.0
    assert rows[staff.id].commission == 30.0
    assert rows[agent.id].tickets_sold == 1
    assert rows[agent.id].commission == 20.0


@pytest.mark.asyncio
async def test_deleted_seller_is_skipped_and_logged(make_seller, make_lottery, caplog):
    kept = await make_seller()
    gone = await make_seller()
    lottery = await make_lottery()
    allocator = SaleAllocator()
    await allocator.sell(lottery.id, 1, "A", "0911000001", kept.id)
    await allocator.sell(lottery.id, 2, "B", "0911000002", gone.id)
    await SellerRepository.delete(gone.id)

    with caplog.at_level(logging.WARNING, logger="services.commission"):
        rows = await CommissionCalculator().report_by_seller(lottery.id)

    assert [row.seller_id for row in rows] == [kept.id]
    assert any(str(gone.id) in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_seller_summary_buckets_and_trends(make_seller, make_lottery):
    seller = await make_seller()
    lottery = await make_lottery(ticket_count=20, commission_per_ticket=5.0)
    allocator = SaleAllocator()
    sale_times = [
        NOW - timedelta(hours=1),
        NOW - timedelta(hours=5),
        NOW - timedelta(hours=30),   # previous day
        NOW - timedelta(days=3),     # earlier this week
        NOW - timedelta(days=10),    # previous week
    ]
    for number, sold_at in enumerate(sale_times, start=1):
        await allocator.sell(lottery.id, number, "Buyer", "0911000001", seller.id, now=sold_at)

    summary = await CommissionCalculator().seller_summary(seller.id, now=NOW)

    assert summary["today"]["ticketsSold"] == 2
    assert summary["today"]["commission"] == 10.0
    assert summary["today"]["ticketsTrend"] == 100.0
    assert summary["thisWeek"]["ticketsSold"] == 4
    assert summary["thisWeek"]["ticketsTrend"] == 300.0
    assert summary["totalTicketsSold"] == 5


@pytest.mark.asyncio
async def test_seller_summary_unknown_seller(db_pool):
    with pytest.raises(NotFoundError):
        await CommissionCalculator().seller_summary(4242, now=NOW)


@pytest.mark.asyncio
async def test_lottery_sales_summary(make_seller, make_lottery):
    seller = await make_seller()
    lottery = await make_lottery(ticket_count=10, ticket_price=50.0, commission_per_ticket=5.0)
    allocator = SaleAllocator()
    await allocator.sell(lottery.id, 1, "A", "0911000001", seller.id)
    await allocator.sell(lottery.id, 2, "B", "0911000002", seller.id)
    calculator = CommissionCalculator()

    active = (await calculator.lottery_sales_summary(lottery.id)).to_dict()
    assert (active["type"], active["sold"], active["unsold"], active["total"]) == ("active", 2, 8, 10)

    await LotteryService().close_lottery(lottery.id)
    ended = (await calculator.lottery_sales_summary(lottery.id)).to_dict()
    assert ended["type"] == "ended"
    assert ended["totalSold"] == 2
    assert ended["totalCollected"] == 100.0
    assert ended["sellers"][0]["commissionEarned"] == 10.0


@pytest.mark.asyncio
async def test_cached_report_is_invalidated_by_sales(make_seller, make_lottery):
    from services import init_cache

    init_cache(hot_ttl=60, warm_ttl=60, cold_ttl=60)
    seller = await make_seller()
    lottery = await make_lottery()
    allocator = SaleAllocator()
    calculator = CommissionCalculator()
    await allocator.sell(lottery.id, 1, "A", "0911000001", seller.id)

    assert (await calculator.report_by_seller(lottery.id))[0].tickets_sold == 1
    await allocator.sell(lottery.id, 2, "B", "0911000002", seller.id)
    assert (await calculator.report_by_seller(lottery.id))[0].tickets_sold == 2
