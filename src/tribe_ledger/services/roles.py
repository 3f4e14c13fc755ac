"""Role grants held by the RoleManager contract."""

from __future__ import annotations

import logging

from tribe_ledger.core.contracts import ROLE_MANAGER, Role
from tribe_ledger.core.session import SessionContext
from tribe_ledger.core.settings import settings
from tribe_ledger.services.gateway import CallOptions, LedgerError
from tribe_ledger.services.writes import (
    WriteAction,
    WriteCoordinator,
    WriteOutcome,
    get_write_coordinator,
    require,
)

logger = logging.getLogger(__name__)


async def check_role(ctx: SessionContext, address: str, role: Role) -> bool:
    """Strict role read; transport errors propagate."""
    return bool(await ctx.read(ctx.contracts.role_manager, "hasRole", role, address))


async def has_role(ctx: SessionContext, address: str | None, role: Role) -> bool:
    """Fail-soft role read: False when signed out or the ledger is unreachable."""
    if not address:
        return False
    try:
        return await check_role(ctx, address, role)
    except LedgerError as exc:
        logger.warning("Error checking %s for %s: %s", role.value, address, exc)
        return False


def require_role(role: Role):
    """Precondition: the signed-in account holds ``role``."""

    async def check(ctx: SessionContext) -> None:
        granted = await check_role(ctx, ctx.account or "", role)
        require(granted, f"Account lacks {role.value}")

    return check


async def grant_role(
    ctx: SessionContext,
    address: str,
    role: Role,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    """Grant ``role`` to ``address``; the signer must hold the admin role."""
    action = WriteAction(
        target=ctx.contracts.role_manager,
        method="grantRole",
        args=(role, address),
        options=CallOptions(gas_limit=settings.gas_limit_default),
        interface=ROLE_MANAGER,
    )
    outcome = await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx, action, preconditions=(require_role(Role.ADMIN),)
    )
    logger.info("Granted %s to %s", role.value, address)
    return outcome
