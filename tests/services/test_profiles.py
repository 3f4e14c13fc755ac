"""Tests for profile lookups and profile writes."""

from __future__ import annotations

import json

import pytest

from tests.ledger_fakes import ALICE, BOB, FakeLedger
from tribe_ledger.core.session import SessionContext
from tribe_ledger.schemas.profile import ProfileMetadata, SocialLinks
from tribe_ledger.services import profiles
from tribe_ledger.services.gateway import LedgerRevertedError, LedgerUnreachableError, RawLog
from tribe_ledger.services.writes import Found, PreconditionError


def install_profiles(ledger: FakeLedger, ctx: SessionContext, owners: dict[int, str]) -> None:
    minter = ctx.contracts.profile_nft_minter

    def balance_of(address: str) -> str:
        return str(sum(1 for owner in owners.values() if owner.lower() == address.lower()))

    def owner_of(token_id: int) -> str:
        if token_id not in owners:
            raise LedgerRevertedError("ERC721: invalid token ID")
        return owners[token_id]

    def profile(token_id: int) -> tuple:
        if token_id not in owners:
            return ("", "", "")
        metadata = json.dumps({"name": f"Holder {token_id}", "socialLinks": {"twitter": "@x"}})
        return (f"user{token_id}", metadata, owners[token_id])

    ledger.on(minter, "balanceOf", balance_of)
    ledger.on(minter, "ownerOf", owner_of)
    ledger.on(minter, "getProfileByTokenId", profile)


@pytest.mark.asyncio
async def test_profile_by_address_scans_owners(ledger: FakeLedger, ctx: SessionContext) -> None:
    install_profiles(ledger, ctx, {1: BOB, 3: ALICE})

    profile = await profiles.get_profile_by_address(ctx, ALICE.lower())

    assert profile.token_id == 3
    assert profile.username == "user3"
    assert profile.metadata.social_links == SocialLinks(twitter="@x")
    assert ledger.read_count("ownerOf") == 4


@pytest.mark.asyncio
async def test_profile_by_address_without_balance(ledger: FakeLedger, ctx: SessionContext) -> None:
    install_profiles(ledger, ctx, {1: BOB})

    assert await profiles.get_profile_by_address(ctx, ALICE) is None
    assert ledger.read_count("ownerOf") == 0


@pytest.mark.asyncio
async def test_profile_beyond_scan_bound_is_not_found(
    ledger: FakeLedger, ctx: SessionContext
) -> None:
    install_profiles(ledger, ctx, {25: ALICE})

    assert await profiles.find_profile_token(ctx, ALICE) is None
    assert ledger.read_count("ownerOf") == 10


@pytest.mark.asyncio
async def test_profile_reads_are_fail_soft(ledger: FakeLedger, ctx: SessionContext) -> None:
    def down(*args: object) -> None:
        raise LedgerUnreachableError("down")

    minter = ctx.contracts.profile_nft_minter
    ledger.on(minter, "balanceOf", down)
    ledger.on(minter, "getProfileByTokenId", down)
    ledger.on(minter, "usernameExists", down)

    assert await profiles.get_profile_by_address(ctx, ALICE) is None
    assert await profiles.get_profile(ctx, 0) is None
    assert await profiles.username_exists(ctx, "alice") is False


@pytest.mark.asyncio
async def test_create_profile_checks_username(ledger: FakeLedger, ctx: SessionContext) -> None:
    minter = ctx.contracts.profile_nft_minter
    ledger.on(minter, "usernameExists", lambda username: username == "taken")
    ledger.on_write(
        minter,
        "createProfile",
        logs=[RawLog(address=minter, event="ProfileCreated", args=("5", ALICE, "alice"))],
    )

    with pytest.raises(PreconditionError, match="already taken"):
        await profiles.create_profile(ctx, "taken", ProfileMetadata(name="Alice"))

    outcome = await profiles.create_profile(ctx, "alice", ProfileMetadata(name="Alice", bio="hi"))

    assert outcome.created == Found(5)
    username, blob = ledger.writes[0]["args"]
    assert username == "alice"
    assert json.loads(blob) == {"name": "Alice", "bio": "hi"}


@pytest.mark.asyncio
async def test_update_profile_requires_owner(ledger: FakeLedger, ctx: SessionContext) -> None:
    install_profiles(ledger, ctx, {0: ALICE, 1: BOB})

    with pytest.raises(PreconditionError, match="owner"):
        await profiles.update_profile(ctx, 1, ProfileMetadata(name="Mallory"))
    with pytest.raises(PreconditionError, match="does not exist"):
        await profiles.update_profile(ctx, 9, ProfileMetadata(name="Ghost"))

    await profiles.update_profile(ctx, 0, ProfileMetadata(name="Alice", cover_image="ipfs://c"))

    token_id, blob = ledger.writes[0]["args"]
    assert token_id == 0
    assert json.loads(blob)["coverImage"] == "ipfs://c"
