"""End-to-end tests for the JSON API through the Flask test client."""

import pytest

from database import SellerRepository


@pytest.fixture
def seeded(api):
    """One staff seller, one agent and a ten-ticket lottery with two prizes."""
    seller = api.run(SellerRepository.create("Staff Seller", "0911000100", "seller", 0.0, True))
    agent = api.run(SellerRepository.create("Field Agent", "0911000200", "agent", 10.0, True))
    response = api.client.post("/api/lotteries", json={
        "title": "Weekly Draw",
        "ticketCount": 10,
        "ticketPrice": 100,
        "commissionPerTicket": 5,
        "prizes": [{"title": "Car"}, {"title": "Phone"}],
    })
    assert response.status_code == 201
    return api, seller, agent, response.get_json()["lottery"]


def _sell(client, lottery_id, number, seller_id, phone="0911223344", name="Abebe"):
    return client.post(f"/api/lotteries/{lottery_id}/sell-ticket", json={
        "ticketNumber": number,
        "customerName": name,
        "customerPhone": phone,
        "sellerId": seller_id,
    })


def test_health_and_metrics(api):
    response = api.client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"
    assert response.get_json()["rate_limited_clients"] == 0

    metrics = api.client.get("/metrics")
    assert metrics.status_code == 200
    assert b"tickets_sold_total" in metrics.data


def test_login(api):
    bad = api.client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
    assert bad.status_code == 401
    assert bad.get_json()["error"] == "authentication_failed"

    good = api.client.post("/api/auth/login", json={"username": "admin", "password": "secret"})
    assert good.status_code == 200
    assert good.get_json()["user"] == {"username": "admin"}


def test_create_lottery_validation_error(api):
    response = api.client.post("/api/lotteries", json={"title": "Draw", "ticketCount": 5, "ticketPrice": 10})
    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "validation_error"
    assert body["details"] == {"field": "prizes"}


def test_sell_ticket_flow(seeded):
    api, seller, _, lottery = seeded
    client = api.client

    sold = _sell(client, lottery["id"], 4, seller.id)
    assert sold.status_code == 201
    ticket = sold.get_json()["ticket"]
    assert ticket["ticketNumber"] == 4
    assert ticket["uniqueTicketCode"] == f"{lottery['id']}-4"
    assert ticket["smsSent"] is False

    again = _sell(client, lottery["id"], 4, seller.id, phone="0911999999")
    assert again.status_code == 409
    assert again.get_json()["error"] == "ticket_already_sold"

    out_of_range = _sell(client, lottery["id"], 11, seller.id)
    assert out_of_range.status_code == 400
    assert out_of_range.get_json()["error"] == "invalid_ticket_number"

    bad_phone = _sell(client, lottery["id"], 5, seller.id, phone="12345")
    assert bad_phone.get_json()["error"] == "invalid_customer"

    no_seller = client.post(f"/api/lotteries/{lottery['id']}/sell-ticket", json={
        "ticketNumber": 5, "customerName": "Abebe", "customerPhone": "0911223344",
    })
    assert no_seller.status_code == 400

    assert _sell(client, 9999, 1, seller.id).status_code == 404

    listed = client.get(f"/api/lotteries/{lottery['id']}").get_json()
    assert listed["soldTickets"] == 1


def test_sell_on_closed_lottery_is_gone(seeded):
    api, seller, _, lottery = seeded
    closed = api.client.post(f"/api/lotteries/{lottery['id']}/close")
    assert closed.status_code == 200
    assert closed.get_json()["lottery"]["status"] == "ended"

    response = _sell(api.client, lottery["id"], 1, seller.id)
    assert response.status_code == 410


def test_sell_is_rate_limited(seeded):
    api, seller, _, lottery = seeded
    api.app.config["SELL_RATE_LIMIT"] = 2

    assert _sell(api.client, lottery["id"], 1, seller.id).status_code == 201
    assert _sell(api.client, lottery["id"], 2, seller.id).status_code == 201
    limited = _sell(api.client, lottery["id"], 3, seller.id)
    assert limited.status_code == 429
    assert limited.get_json()["details"]["retryAfterSeconds"] > 0


def test_sold_tickets_poll_hint(seeded):
    api, seller, _, lottery = seeded
    for number in (7, 3):
        _sell(api.client, lottery["id"], number, seller.id)

    body = api.client.get(f"/api/lotteries/{lottery['id']}/sold-tickets").get_json()

    assert body["soldTicketNumbers"] == [3, 7]
    interval = api.app.config["POLL_INTERVAL_MS"]
    jitter = api.app.config["POLL_JITTER_MS"]
    assert interval - jitter <= body["pollAfterMs"] <= interval + jitter


def test_winner_entry_and_edit(seeded):
    api, seller, _, lottery = seeded
    client = api.client
    lottery_id = lottery["id"]
    for number in (2, 5, 8):
        _sell(client, lottery_id, number, seller.id)

    early = client.post(f"/api/lotteries/{lottery_id}/enter-winners", json={
        "winningTickets": [{"rank": 1, "ticketNumber": 5}, {"rank": 2, "ticketNumber": 2}],
    })
    assert early.status_code == 400
    assert early.get_json()["error"] == "lottery_not_ended"

    client.post(f"/api/lotteries/{lottery_id}/close")
    pending = client.get("/api/lotteries/ended-without-winners").get_json()
    assert [l["id"] for l in pending] == [lottery_id]

    invalid = client.post(f"/api/lotteries/{lottery_id}/enter-winners", json={
        "winningTickets": [{"rank": 1, "ticketNumber": 3}],
    })
    assert invalid.status_code == 400
    rules = {v["rule"] for v in invalid.get_json()["details"]["violations"]}
    assert rules == {"missing_rank", "ticket_not_sold"}

    entered = client.post(f"/api/lotteries/{lottery_id}/enter-winners", json={
        "winningTickets": [{"rank": 1, "ticketNumber": 5}, {"rank": 2, "ticketNumber": 2}],
        "tiktokLink": "https://tiktok.com/@draw/live",
        "operatorId": seller.id,
    })
    assert entered.status_code == 200
    assert entered.get_json()["lottery"]["winningTicketNumber"] == [5, 2]

    repeat = client.post(f"/api/lotteries/{lottery_id}/enter-winners", json={
        "winningTickets": [{"rank": 1, "ticketNumber": 5}, {"rank": 2, "ticketNumber": 2}],
    })
    assert repeat.status_code == 409

    edited = client.put(f"/api/lotteries/{lottery_id}/update-winners", json={
        "winningTickets": [{"rank": 1, "ticketNumber": 8}, {"rank": 2, "ticketNumber": 5}],
    })
    assert edited.status_code == 200
    assert edited.get_json()["lottery"]["winningTicketNumber"] == [8, 5]

    groups = client.get("/api/winners").get_json()
    assert len(groups) == 1
    assert [(w["winnerRank"], w["ticketNumber"], w["prizeTitle"]) for w in groups[0]["winners"]] == [
        (1, 8, "Car"), (2, 5, "Phone"),
    ]
    assert client.delete(f"/api/lotteries/{lottery_id}").status_code == 409


def test_operator_queues_and_acknowledgments(seeded):
    api, seller, _, lottery = seeded
    client = api.client
    ticket_id = _sell(client, lottery["id"], 1, seller.id).get_json()["ticket"]["id"]
    _sell(client, lottery["id"], 2, seller.id)

    pending = client.get("/api/operator/pending-sms-tickets").get_json()
    assert [t["ticketNumber"] for t in pending] == [2, 1]
    assert pending[0]["customer"]["phone"] == "0911223344"

    first = client.put(f"/api/operator/tickets/{ticket_id}/mark-sms-sent", json={"operatorId": 1})
    second = client.put(f"/api/operator/tickets/{ticket_id}/mark-sms-sent")
    assert first.status_code == second.status_code == 200
    assert first.get_json()["ticket"]["smsSentAt"] == second.get_json()["ticket"]["smsSentAt"]
    assert client.put("/api/operator/tickets/4242/mark-sms-sent").status_code == 404

    stats = client.get("/api/operator/dashboard-stats").get_json()
    assert stats["pendingSms"]["value"] == 1
    assert stats["smsSentToday"]["value"] == 1

    winner_queues = client.get("/api/operator/pending-winner-sms").get_json()
    assert winner_queues == {"winnerTickets": [], "nonWinnerTickets": []}


def test_commission_reports(seeded):
    api, seller, agent, lottery = seeded
    client = api.client
    _sell(client, lottery["id"], 1, seller.id)
    _sell(client, lottery["id"], 2, seller.id)
    _sell(client, lottery["id"], 3, agent.id)

    report = client.get(f"/api/reports/commissions?lotteryId={lottery['id']}").get_json()
    by_seller = {row["sellerId"]: row for row in report["sellers"]}
    assert by_seller[seller.id]["commissionEarned"] == 10.0
    assert by_seller[agent.id]["commissionEarned"] == 10.0
    assert report["totalCommission"] == 20.0

    summary = client.get(f"/api/reports/sellers/{seller.id}/summary").get_json()
    assert summary["today"]["ticketsSold"] == 2
    assert summary["totalTicketsSold"] == 2

    assert client.get("/api/reports/commissions?since=yesterday").status_code == 400
    assert client.get("/api/reports/sellers/4242/summary").status_code == 404

    sales = client.get(f"/api/lotteries/{lottery['id']}/sales-summary").get_json()
    assert (sales["sold"], sales["unsold"]) == (3, 7)


def test_delete_ticket_and_activity_feed(seeded):
    api, seller, _, lottery = seeded
    client = api.client
    ticket_id = _sell(client, lottery["id"], 6, seller.id).get_json()["ticket"]["id"]

    assert client.delete(f"/api/tickets/{ticket_id}").status_code == 200
    assert client.delete(f"/api/tickets/{ticket_id}").status_code == 404

    actions = [entry["action"] for entry in client.get("/api/activities?limit=5").get_json()]
    assert actions[:3] == ["Ticket Deleted", "Ticket Sold", "Lottery Created"]


def test_update_lottery_endpoint(seeded):
    api, _, _, lottery = seeded
    response = api.client.put(f"/api/lotteries/{lottery['id']}", json={"ticketCount": 1})
    assert response.status_code == 400

    response = api.client.put(f"/api/lotteries/{lottery['id']}", json={"title": "Holiday Draw"})
    assert response.status_code == 200
    assert response.get_json()["lottery"]["title"] == "Holiday Draw"

    listed = api.client.get("/api/lotteries?status=active").get_json()
    assert [l["title"] for l in listed] == ["Holiday Draw"]
