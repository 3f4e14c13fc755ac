"""Profile token reads and writes against the ProfileNFTMinter contract."""

from __future__ import annotations

import logging

from tribe_ledger.core.contracts import PROFILE_NFT_MINTER
from tribe_ledger.core.session import SessionContext
from tribe_ledger.core.settings import settings
from tribe_ledger.schemas.profile import Profile, ProfileMetadata
from tribe_ledger.services.gateway import CallOptions, LedgerError
from tribe_ledger.services.reconcile import (
    Present,
    Reconciled,
    as_int,
    encode_metadata,
    reconcile_profile,
)
from tribe_ledger.services.writes import (
    WriteAction,
    WriteCoordinator,
    WriteOutcome,
    get_write_coordinator,
    require,
)

__all__ = [
    "fetch_profile",
    "get_profile",
    "find_profile_token",
    "get_profile_by_address",
    "username_exists",
    "create_profile",
    "update_profile",
]

logger = logging.getLogger(__name__)


async def fetch_profile(ctx: SessionContext, token_id: int) -> Reconciled[Profile]:
    raw = await ctx.read(ctx.contracts.profile_nft_minter, "getProfileByTokenId", token_id)
    return reconcile_profile(token_id, raw)


async def get_profile(ctx: SessionContext, token_id: int) -> Profile | None:
    try:
        result = await fetch_profile(ctx, token_id)
    except LedgerError as exc:
        logger.warning("Error fetching profile %s: %s", token_id, exc)
        return None
    return result.entity if isinstance(result, Present) else None


async def find_profile_token(ctx: SessionContext, address: str) -> int | None:
    """Return the profile token owned by ``address``, or None.

    The contract keeps no owner index, so token ids are probed with
    ``ownerOf`` up to the configured scan bound. Unminted ids raise on the
    ledger side and are skipped.
    """
    minter = ctx.contracts.profile_nft_minter
    balance = as_int(await ctx.read(minter, "balanceOf", address))
    if balance == 0:
        return None

    for token_id in range(settings.profile_token_scan_max):
        try:
            owner = await ctx.read(minter, "ownerOf", token_id)
        except LedgerError:
            logger.debug("Profile token %s has no owner", token_id)
            continue
        if owner and str(owner).lower() == address.lower():
            return token_id

    logger.warning(
        "%s holds a profile but none within the first %s tokens",
        address,
        settings.profile_token_scan_max,
    )
    return None


async def get_profile_by_address(ctx: SessionContext, address: str) -> Profile | None:
    try:
        token_id = await find_profile_token(ctx, address)
        if token_id is None:
            return None
        result = await fetch_profile(ctx, token_id)
    except LedgerError as exc:
        logger.warning("Error fetching profile for %s: %s", address, exc)
        return None
    return result.entity if isinstance(result, Present) else None


async def username_exists(ctx: SessionContext, username: str) -> bool:
    try:
        return bool(await ctx.read(ctx.contracts.profile_nft_minter, "usernameExists", username))
    except LedgerError as exc:
        logger.warning("Error checking username %r: %s", username, exc)
        return False


def _username_available(username: str):
    async def check(ctx: SessionContext) -> None:
        taken = await ctx.read(ctx.contracts.profile_nft_minter, "usernameExists", username)
        require(not taken, f"Username {username!r} is already taken")

    return check


def _signer_owns_profile(token_id: int):
    async def check(ctx: SessionContext) -> None:
        result = await fetch_profile(ctx, token_id)
        require(isinstance(result, Present), f"Profile {token_id} does not exist")
        require(ctx.is_account(result.entity.owner), "Only the profile owner can update it")

    return check


async def create_profile(
    ctx: SessionContext,
    username: str,
    metadata: ProfileMetadata,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    """Mint a profile token for the signer.

    The new token id is reported through ``WriteOutcome.created``.
    """
    require(bool(username.strip()), "Username must not be empty")
    action = WriteAction(
        target=ctx.contracts.profile_nft_minter,
        method="createProfile",
        args=(username, encode_metadata(metadata)),
        options=CallOptions(gas_limit=settings.gas_limit_create),
        interface=PROFILE_NFT_MINTER,
    )
    outcome = await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx,
        action,
        creation_event="ProfileCreated",
        preconditions=(_username_available(username),),
    )
    logger.info("Created profile %r: %s", username, outcome.created)
    return outcome


async def update_profile(
    ctx: SessionContext,
    token_id: int,
    metadata: ProfileMetadata,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    action = WriteAction(
        target=ctx.contracts.profile_nft_minter,
        method="updateProfileMetadata",
        args=(token_id, encode_metadata(metadata)),
        options=CallOptions(gas_limit=settings.gas_limit_default),
        interface=PROFILE_NFT_MINTER,
    )
    return await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx, action, preconditions=(_signer_owns_profile(token_id),)
    )
