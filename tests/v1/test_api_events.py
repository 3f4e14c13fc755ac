"""Tests for the ticketed event endpoints."""

from __future__ import annotations

import json

from fastapi.testclient import TestClient

from tests.ledger_fakes import ALICE, BOB, FakeLedger, TEST_ADDRESSES
from tribe_ledger.core.contracts import ZERO_ADDRESS, Role

EVENTS = TEST_ADDRESSES["event_controller_address"]
ROLES = TEST_ADDRESSES["role_manager_address"]


def seed(ledger: FakeLedger) -> None:
    rows = {
        0: (json.dumps({"title": "Gig"}), ALICE, "100", "40", "1000", True),
        1: (json.dumps({"title": "Talk"}), BOB, "50", "0", "0", True),
    }
    ledger.on(
        EVENTS,
        "events",
        lambda event_id: rows.get(event_id, ("", ZERO_ADDRESS, "0", "0", "0", False)),
    )


def test_list_events(client: TestClient, ledger: FakeLedger) -> None:
    seed(ledger)

    body = client.get("/api/v1/events/").json()

    assert [event["metadata"]["title"] for event in body] == ["Gig", "Talk"]
    assert body[0]["tickets_sold"] == 40
    assert body[0]["price_display"] == "0.000000000000001"


def test_my_events_follow_account_header(client: TestClient, ledger: FakeLedger) -> None:
    seed(ledger)

    assert client.get("/api/v1/events/mine").json() == []
    mine = client.get("/api/v1/events/mine", headers={"X-Ledger-Account": BOB}).json()
    assert [event["id"] for event in mine] == [1]


def test_events_by_organizer(client: TestClient, ledger: FakeLedger) -> None:
    seed(ledger)

    body = client.get(f"/api/v1/events/organizer/{ALICE.lower()}").json()

    assert [event["id"] for event in body] == [0]


def test_organizer_role(client: TestClient, ledger: FakeLedger) -> None:
    ledger.on(ROLES, "hasRole", lambda role, address: role is Role.ORGANIZER and address == ALICE)

    assert client.get(f"/api/v1/events/organizer/{ALICE}/role").json()["is_organizer"] is True
    assert client.get(f"/api/v1/events/organizer/{BOB}/role").json()["is_organizer"] is False


def test_get_event_and_tickets(client: TestClient, ledger: FakeLedger) -> None:
    seed(ledger)
    ledger.on(EVENTS, "balanceOf", lambda address, event_id: "2" if address == ALICE else "0")

    assert client.get("/api/v1/events/0").json()["price"] == 1000
    assert client.get("/api/v1/events/5").status_code == 404
    tickets = client.get(f"/api/v1/events/0/tickets/{ALICE}").json()
    assert tickets == {"event_id": 0, "address": ALICE, "balance": 2}
