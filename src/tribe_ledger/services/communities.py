"""Community (tribe) reads and writes against the TribeController contract.

Communities carry a ledger-held ``nextTribeId`` counter, so enumeration is
counter-bounded rather than sentinel-terminated.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from tribe_ledger.core.contracts import TRIBE_CONTROLLER
from tribe_ledger.core.session import SessionContext
from tribe_ledger.core.settings import settings
from tribe_ledger.schemas.community import Community, CommunityConfig, CommunityMetadata, JoinPolicy
from tribe_ledger.services.enumerator import CounterBoundedScan, Enumerator, FunctionSource
from tribe_ledger.services.gateway import CallOptions, LedgerError
from tribe_ledger.services.reconcile import (
    Present,
    Reconciled,
    encode_metadata,
    reconcile_community,
    reconcile_community_config,
)
from tribe_ledger.services.writes import (
    WriteAction,
    WriteCoordinator,
    WriteOutcome,
    get_write_coordinator,
    require,
)

__all__ = [
    "get_next_community_id",
    "fetch_community",
    "get_community",
    "get_all_communities",
    "get_communities_by_admin",
    "get_community_config",
    "get_member_count",
    "is_member",
    "get_membership_status",
    "create_community",
    "join_community",
    "leave_community",
]

logger = logging.getLogger(__name__)


async def get_next_community_id(ctx: SessionContext) -> int:
    """Return the ledger's next community id, i.e. the number of ids issued.

    Transport errors propagate so the caller can retry.
    """
    return int(await ctx.read(ctx.contracts.tribe_controller, "nextTribeId"))


async def fetch_community(ctx: SessionContext, community_id: int) -> Reconciled[Community]:
    raw = await ctx.read(ctx.contracts.tribe_controller, "getTribeDetails", community_id)
    return reconcile_community(community_id, raw)


async def get_community(ctx: SessionContext, community_id: int) -> Community | None:
    """Return the community, or None if it does not exist or cannot be read."""
    try:
        result = await fetch_community(ctx, community_id)
    except LedgerError as exc:
        logger.warning("Error fetching community %s: %s", community_id, exc)
        return None
    return result.entity if isinstance(result, Present) else None


async def get_all_communities(ctx: SessionContext) -> list[Community]:
    """Return every live community in id order; empty if the counter is unreadable."""
    enumerator = Enumerator(CounterBoundedScan(lambda: get_next_community_id(ctx)))
    source = FunctionSource("community", lambda index: fetch_community(ctx, index))
    try:
        return await enumerator.enumerate(source)
    except LedgerError as exc:
        logger.warning("Error fetching all communities: %s", exc)
        return []


async def get_communities_by_admin(ctx: SessionContext, admin: str) -> list[Community]:
    communities = await get_all_communities(ctx)
    return [c for c in communities if c.admin and c.admin.lower() == admin.lower()]


async def get_community_config(ctx: SessionContext, community_id: int) -> CommunityConfig | None:
    try:
        raw = await ctx.read(ctx.contracts.tribe_controller, "getTribeConfigView", community_id)
        return reconcile_community_config(raw)
    except (LedgerError, ValueError) as exc:
        logger.warning("Error fetching config for community %s: %s", community_id, exc)
        return None


async def get_member_count(ctx: SessionContext, community_id: int) -> int:
    """Return the member count. Transport errors propagate."""
    return int(await ctx.read(ctx.contracts.tribe_controller, "getMemberCount", community_id))


async def is_member(ctx: SessionContext, community_id: int, address: str) -> bool:
    """Strict membership read; transport errors propagate."""
    return bool(await ctx.read(ctx.contracts.tribe_controller, "isMember", community_id, address))


async def get_membership_status(ctx: SessionContext, community_id: int, address: str) -> bool:
    """Fail-soft membership read: False when the ledger cannot be reached."""
    try:
        return await is_member(ctx, community_id, address)
    except LedgerError as exc:
        logger.warning("Error checking membership for community %s: %s", community_id, exc)
        return False


def _community_is_open(community_id: int):
    async def check(ctx: SessionContext) -> None:
        result = await fetch_community(ctx, community_id)
        require(isinstance(result, Present), f"Community {community_id} does not exist")
        require(result.entity.is_active is not False, f"Community {community_id} is not active")

    return check


def _membership_is(community_id: int, expected: bool):
    async def check(ctx: SessionContext) -> None:
        member = await is_member(ctx, community_id, ctx.account or "")
        if expected:
            require(member, f"Not a member of community {community_id}")
        else:
            require(not member, f"Already a member of community {community_id}")

    return check


async def create_community(
    ctx: SessionContext,
    name: str,
    description: str,
    join_policy: JoinPolicy = JoinPolicy.OPEN,
    entry_fee: int = 0,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    """Create a community with the caller as sole admin.

    The new id is reported through ``WriteOutcome.created``.
    """
    require(bool(name.strip()), "Community name must not be empty")
    require(entry_fee >= 0, "Entry fee must not be negative")

    metadata = CommunityMetadata(
        description=description,
        created_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )
    action = WriteAction(
        target=ctx.contracts.tribe_controller,
        method="createTribe",
        # admins and asset requirements are left empty
        args=(name, encode_metadata(metadata), [], join_policy, entry_fee, []),
        options=CallOptions(gas_limit=settings.gas_limit_create),
        interface=TRIBE_CONTROLLER,
    )
    outcome = await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx, action, creation_event="TribeCreated"
    )
    logger.info("Created community %r: %s", name, outcome.created)
    return outcome


async def join_community(
    ctx: SessionContext,
    community_id: int,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    action = WriteAction(
        target=ctx.contracts.tribe_controller,
        method="joinTribe",
        args=(community_id,),
        options=CallOptions(gas_limit=settings.gas_limit_default),
        interface=TRIBE_CONTROLLER,
    )
    return await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx,
        action,
        preconditions=(_community_is_open(community_id), _membership_is(community_id, False)),
    )


async def leave_community(
    ctx: SessionContext,
    community_id: int,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    action = WriteAction(
        target=ctx.contracts.tribe_controller,
        method="rejectMember",
        args=(community_id,),
        options=CallOptions(gas_limit=settings.gas_limit_default),
        interface=TRIBE_CONTROLLER,
    )
    return await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx,
        action,
        preconditions=(_membership_is(community_id, True),),
    )
