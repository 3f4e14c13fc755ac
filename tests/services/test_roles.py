"""Tests for role checks and grants."""

from __future__ import annotations

import pytest

from tests.ledger_fakes import ALICE, BOB, FakeLedger
from tribe_ledger.core.contracts import Role
from tribe_ledger.core.session import SessionContext
from tribe_ledger.services import roles
from tribe_ledger.services.gateway import LedgerUnreachableError
from tribe_ledger.services.writes import PreconditionError


@pytest.mark.asyncio
async def test_has_role_is_fail_soft(ledger: FakeLedger, ctx: SessionContext) -> None:
    def has_role(role: Role, address: str) -> bool:
        if address == BOB:
            raise LedgerUnreachableError("down")
        return role is Role.ORGANIZER

    ledger.on(ctx.contracts.role_manager, "hasRole", has_role)

    assert await roles.has_role(ctx, ALICE, Role.ORGANIZER) is True
    assert await roles.has_role(ctx, ALICE, Role.ADMIN) is False
    assert await roles.has_role(ctx, BOB, Role.ORGANIZER) is False
    assert await roles.has_role(ctx, None, Role.ORGANIZER) is False


@pytest.mark.asyncio
async def test_grant_role_requires_admin(ledger: FakeLedger, ctx: SessionContext) -> None:
    admins: set[str] = set()
    ledger.on(
        ctx.contracts.role_manager,
        "hasRole",
        lambda role, address: role is Role.ADMIN and address in admins,
    )

    with pytest.raises(PreconditionError):
        await roles.grant_role(ctx, BOB, Role.ORGANIZER)

    admins.add(ALICE)
    await roles.grant_role(ctx, BOB, Role.ORGANIZER)

    assert ledger.writes[0]["method"] == "grantRole"
    assert ledger.writes[0]["args"] == (Role.ORGANIZER, BOB)
