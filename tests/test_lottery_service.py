"""Tests for the lottery lifecycle and the activity log."""

import pytest

from core.constants import LotteryStatus, LotteryType
from core.exceptions import InvalidSeller, NotFoundError, StateError, ValidationError
from database import TicketRepository
from services import ActivityService, LotteryService, SaleAllocator, WinnerResolver
from services.lottery_service import build_prizes


def test_build_prizes_numbers_in_order():
    prizes = build_prizes([{"title": "Car"}, {"title": "TV", "imageUrl": "/img/tv.png"}], 10)
    assert [(p.rank, p.title, p.image_url) for p in prizes] == [
        (1, "Car", None),
        (2, "TV", "/img/tv.png"),
    ]


@pytest.mark.parametrize("raw, count", [
    ([], 10),
    ("Car", 10),
    ([{"title": ""}], 10),
    ([{"title": "A"}, {"title": "B"}, {"title": "C"}], 2),
    (["Car"], 10),
])
def test_build_prizes_rejects(raw, count):
    with pytest.raises(ValidationError):
        build_prizes(raw, count)


@pytest.mark.asyncio
async def test_create_lottery_defaults(make_lottery):
    lottery = await make_lottery(ticket_count=25, prizes=2)

    assert lottery.status is LotteryStatus.ACTIVE
    assert lottery.type is LotteryType.COMPANY
    assert lottery.ticket_count == 25
    assert lottery.prize_ranks == [1, 2]
    assert lottery.winning_ticket_numbers == []
    assert lottery.created_at is not None


@pytest.mark.asyncio
async def test_lottery_created_by_agent_is_agent_type(make_seller, make_lottery):
    agent = await make_seller(role="agent", commission_rate=5)
    staff = await make_seller()

    assert (await make_lottery(created_by=agent.id)).type is LotteryType.AGENT
    assert (await make_lottery(created_by=staff.id)).type is LotteryType.COMPANY
    with pytest.raises(InvalidSeller):
        await make_lottery(created_by=4242)


@pytest.mark.asyncio
async def test_create_lottery_validation(db_pool):
    service = LotteryService()
    prizes = [{"title": "Car"}]

    with pytest.raises(ValidationError):
        await service.create_lottery("", 10, 50, prizes)
    with pytest.raises(ValidationError):
        await service.create_lottery("Draw", 0, 50, prizes)
    with pytest.raises(ValidationError):
        await service.create_lottery("Draw", 10, 0, prizes)
    with pytest.raises(ValidationError):
        await service.create_lottery("Draw", 10, 50, prizes, commission_per_ticket=-1)
    assert await service.list_lotteries() == []


@pytest.mark.asyncio
async def test_list_lotteries_filters(make_lottery):
    service = LotteryService()
    first = await make_lottery()
    second = await make_lottery()
    await service.close_lottery(second.id)

    assert [l.id for l in await service.list_lotteries(status="active")] == [first.id]
    assert [l.id for l in await service.list_lotteries(status="ended")] == [second.id]
    assert len(await service.list_lotteries(search="weekly")) == 2
    assert await service.list_lotteries(search="monthly") == []
    with pytest.raises(ValidationError):
        await service.list_lotteries(status="paused")


@pytest.mark.asyncio
async def test_update_lottery_fields_and_prizes(make_lottery):
    lottery = await make_lottery(ticket_count=10, prizes=2)

    updated = await LotteryService().update_lottery(lottery.id, {
        "title": "Holiday Draw",
        "ticketPrice": 75,
        "prizes": [{"title": "Phone"}],
    })

    assert updated.title == "Holiday Draw"
    assert updated.ticket_price == 75.0
    assert [(p.rank, p.title) for p in updated.prizes] == [(1, "Phone")]


@pytest.mark.asyncio
async def test_ticket_count_cannot_drop_below_sold(make_seller, make_lottery):
    seller = await make_seller()
    lottery = await make_lottery(ticket_count=10, prizes=1)
    allocator = SaleAllocator()
    for number in (1, 2, 3):
        await allocator.sell(lottery.id, number, "Buyer", "0911000001", seller.id)
    service = LotteryService()

    with pytest.raises(ValidationError) as exc_info:
        await service.update_lottery(lottery.id, {"ticketCount": 2})
    assert exc_info.value.details["soldTickets"] == 3

    assert (await service.update_lottery(lottery.id, {"ticketCount": 3})).ticket_count == 3
    assert (await service.update_lottery(lottery.id, {"ticketCount": 50})).ticket_count == 50


@pytest.mark.asyncio
async def test_ticket_count_cannot_drop_below_prizes(make_lottery):
    lottery = await make_lottery(ticket_count=10, prizes=3)

    with pytest.raises(ValidationError):
        await LotteryService().update_lottery(lottery.id, {"ticketCount": 2})


@pytest.mark.asyncio
async def test_ended_lottery_cannot_be_edited(make_lottery):
    service = LotteryService()
    lottery = await make_lottery()
    await service.close_lottery(lottery.id)

    with pytest.raises(StateError):
        await service.update_lottery(lottery.id, {"title": "Renamed"})
    with pytest.raises(NotFoundError):
        await service.update_lottery(9999, {"title": "Renamed"})


@pytest.mark.asyncio
async def test_close_lottery_is_idempotent(make_lottery):
    service = LotteryService()
    lottery = await make_lottery()

    closed = await service.close_lottery(lottery.id)
    again = await service.close_lottery(lottery.id)

    assert closed.status is LotteryStatus.ENDED
    assert closed.ended_at is not None
    assert again.ended_at == closed.ended_at


@pytest.mark.asyncio
async def test_delete_ticket_rules(make_seller, make_lottery):
    seller = await make_seller()
    lottery = await make_lottery(ticket_count=10, prizes=1)
    allocator = SaleAllocator()
    service = LotteryService()
    first = await allocator.sell(lottery.id, 1, "Buyer", "0911000001", seller.id)
    second = await allocator.sell(lottery.id, 2, "Buyer", "0911000001", seller.id)

    deleted = await service.delete_ticket(first.id)
    assert deleted.ticket_number == 1
    assert await TicketRepository.get(first.id) is None
    # the number becomes sellable again
    await allocator.sell(lottery.id, 1, "Another", "0911000009", seller.id)

    await service.close_lottery(lottery.id)
    await WinnerResolver().resolve(lottery.id, None, [{"rank": 1, "ticketNumber": 2}])
    with pytest.raises(StateError):
        await service.delete_ticket(second.id)
    with pytest.raises(NotFoundError):
        await service.delete_ticket(4242)


@pytest.mark.asyncio
async def test_delete_lottery_rules(make_seller, make_lottery):
    seller = await make_seller()
    service = LotteryService()
    disposable = await make_lottery()
    await SaleAllocator().sell(disposable.id, 1, "Buyer", "0911000001", seller.id)

    await service.delete_lottery(disposable.id)
    with pytest.raises(NotFoundError):
        await service.get_lottery(disposable.id)

    resolved = await make_lottery(prizes=1)
    await SaleAllocator().sell(resolved.id, 1, "Buyer", "0911000001", seller.id)
    await service.close_lottery(resolved.id)
    await WinnerResolver().resolve(resolved.id, None, [{"rank": 1, "ticketNumber": 1}])
    with pytest.raises(StateError):
        await service.delete_lottery(resolved.id)


@pytest.mark.asyncio
async def test_activity_log_newest_first(db_pool):
    await ActivityService.log("lottery_created", "Weekly Draw")
    await ActivityService.log("winners_entered", "Weekly Draw", severity="success", actor_id=3)

    entries = await ActivityService.recent(limit=10)

    assert [e.action for e in entries] == ["winners_entered", "lottery_created"]
    assert entries[0].to_dict()["actorId"] == 3
    assert entries[0].severity == "success"
    with pytest.raises(ValueError):
        await ActivityService.log("oops", severity="fatal")
