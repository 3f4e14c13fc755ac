"""Tests for the write coordinator and created-id extraction."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from tests.ledger_fakes import ALICE, FakeLedger
from tribe_ledger.core.contracts import POST_MINTER, TRIBE_CONTROLLER
from tribe_ledger.core.session import SessionContext
from tribe_ledger.services.gateway import (
    CallKind,
    CallOptions,
    HttpLedgerGateway,
    LedgerRevertedError,
    PendingTransaction,
    RawLog,
    Receipt,
)
from tribe_ledger.services.writes import (
    Found,
    NotFound,
    NotSignedInError,
    PreconditionError,
    WriteAction,
    WriteCoordinator,
    extract_created_id,
    require,
)

TRIBE = "0x00000000000000000000000000000000000000a1"
OTHER = "0x00000000000000000000000000000000000000ff"


def receipt_with(*logs: RawLog) -> Receipt:
    return Receipt(tx_hash="0xfeed", status=1, block_number=3, logs=logs)


def create_tribe_action(**overrides) -> WriteAction:
    fields = {
        "target": TRIBE,
        "method": "createTribe",
        "args": ("Climbers", "{}", [], 0, 0, []),
        "options": CallOptions(gas_limit=500_000),
        "interface": TRIBE_CONTROLLER,
    }
    fields.update(overrides)
    return WriteAction(**fields)


def test_extract_created_id_matches_second_event() -> None:
    receipt = receipt_with(
        RawLog(address=TRIBE, event="MemberJoined", args=("7", ALICE), log_index=0),
        RawLog(address=TRIBE, event="TribeCreated", args=("42", "Climbers", ALICE, "0"), log_index=1),
    )

    assert extract_created_id(receipt, "TribeCreated", TRIBE_CONTROLLER) == Found(42)


def test_extract_created_id_ignores_other_contracts_and_bad_shapes() -> None:
    receipt = receipt_with(
        RawLog(address=OTHER, event="TribeCreated", args=("1", "x", ALICE, "0")),
        RawLog(address=TRIBE, event="TribeCreated", args=("2", "short")),
        RawLog(address=TRIBE, event=None, args=()),
    )

    result = extract_created_id(receipt, "TribeCreated", TRIBE_CONTROLLER, address=TRIBE)

    assert result == NotFound("TribeCreated")


def test_extract_created_id_skips_non_numeric_id() -> None:
    receipt = receipt_with(
        RawLog(address=TRIBE, event="PostCreated", args=("abc", ALICE, "1", "{}")),
        RawLog(address=TRIBE, event="PostCreated", args=("5", ALICE, "1", "{}")),
    )

    assert extract_created_id(receipt, "PostCreated", POST_MINTER) == Found(5)


@pytest.mark.asyncio
async def test_submit_and_confirm_reports_created_id(ledger: FakeLedger, ctx: SessionContext) -> None:
    ledger.on_write(
        TRIBE,
        "createTribe",
        logs=[
            RawLog(address=TRIBE, event="MemberJoined", args=("9", ALICE)),
            RawLog(address=TRIBE, event="TribeCreated", args=("9", "Climbers", ALICE, "0")),
        ],
    )

    outcome = await WriteCoordinator().submit_and_confirm(
        ctx, create_tribe_action(), creation_event="TribeCreated"
    )

    assert outcome.created == Found(9)
    assert outcome.created_id == 9
    assert ledger.writes[0]["sender"] == ALICE
    assert ledger.writes[0]["options"].gas_limit == 500_000


@pytest.mark.asyncio
async def test_missing_creation_event_is_not_found(ledger: FakeLedger, ctx: SessionContext) -> None:
    outcome = await WriteCoordinator().submit_and_confirm(
        ctx, create_tribe_action(), creation_event="TribeCreated"
    )

    assert outcome.created == NotFound("TribeCreated")
    with pytest.raises(LookupError):
        _ = outcome.created_id


@pytest.mark.asyncio
async def test_default_gas_limit_is_filled(ledger: FakeLedger, ctx: SessionContext) -> None:
    coordinator = WriteCoordinator(default_gas_limit=123_456)

    await coordinator.submit_and_confirm(ctx, create_tribe_action(options=CallOptions(value=5)))

    options = ledger.writes[0]["options"]
    assert options.gas_limit == 123_456
    assert options.value == 5


@pytest.mark.asyncio
async def test_signed_out_write_is_refused(ledger: FakeLedger, anon_ctx: SessionContext) -> None:
    with pytest.raises(NotSignedInError):
        await WriteCoordinator().submit_and_confirm(anon_ctx, create_tribe_action())

    assert ledger.writes == []


@pytest.mark.asyncio
async def test_failed_precondition_prevents_submission(
    ledger: FakeLedger, ctx: SessionContext
) -> None:
    seen: list[str | None] = []

    async def must_be_admin(check_ctx: SessionContext) -> None:
        seen.append(check_ctx.account)
        require(False, "not an admin")

    with pytest.raises(PreconditionError, match="not an admin"):
        await WriteCoordinator().submit_and_confirm(
            ctx, create_tribe_action(), preconditions=(must_be_admin,)
        )

    assert seen == [ALICE]
    assert ledger.writes == []


@pytest.mark.asyncio
async def test_reverted_receipt_raises(ledger: FakeLedger, ctx: SessionContext) -> None:
    ledger.on_write(TRIBE, "createTribe", status=0)

    with pytest.raises(LedgerRevertedError):
        await WriteCoordinator().submit_and_confirm(
            ctx, create_tribe_action(), creation_event="TribeCreated"
        )


@pytest.mark.asyncio
async def test_creation_event_requires_interface(ledger: FakeLedger, ctx: SessionContext) -> None:
    with pytest.raises(ValueError):
        await WriteCoordinator().submit_and_confirm(
            ctx, create_tribe_action(interface=None), creation_event="TribeCreated"
        )


@pytest.mark.asyncio
async def test_interrupted_wait_is_reraised() -> None:
    pending = AsyncMock(spec=PendingTransaction)
    pending.tx_hash = "0xdead"
    pending.wait.side_effect = asyncio.CancelledError()
    gateway = AsyncMock(spec=HttpLedgerGateway)
    gateway.call.return_value = pending
    ctx = SessionContext(gateway=gateway, chain_id=123, account=ALICE)

    with pytest.raises(asyncio.CancelledError):
        await WriteCoordinator().submit_and_confirm(ctx, create_tribe_action())

    gateway.call.assert_awaited_once()
    assert gateway.call.await_args.args[0] is CallKind.WRITE
