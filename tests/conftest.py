# tests/conftest.py
from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from tests.ledger_fakes import ALICE, TEST_ADDRESSES, FakeLedger
from tribe_ledger.core.session import SessionContext
from tribe_ledger.core.settings import settings


@pytest.fixture(autouse=True)
def contract_addresses(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Give every contract its own address so handlers do not collide."""
    for name, address in TEST_ADDRESSES.items():
        monkeypatch.setattr(settings, name, address)
    return TEST_ADDRESSES


@pytest.fixture()
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture()
def ctx(ledger: FakeLedger) -> SessionContext:
    return SessionContext(gateway=ledger, chain_id=settings.ledger_chain_id, account=ALICE)


@pytest.fixture()
def anon_ctx(ledger: FakeLedger) -> SessionContext:
    return SessionContext(gateway=ledger, chain_id=settings.ledger_chain_id)


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, ledger: FakeLedger) -> Iterator[TestClient]:
    """TestClient whose requests read from the fake ledger."""
    from tribe_ledger.api.v1 import dependencies
    from tribe_ledger.main import app

    monkeypatch.setattr(settings, "ledger_rpc_url", "http://relay.test/rpc")
    app.dependency_overrides[dependencies.get_gateway] = lambda: ledger
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()
