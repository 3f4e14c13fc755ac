# src/tribe_ledger/api/v1/endpoints/profiles.py
"""Profile endpoints for the tribe ledger API."""

from __future__ import annotations

from fastapi import APIRouter

from tribe_ledger.schemas.profile import Profile
from tribe_ledger.services import profiles as profile_service

from ..dependencies import LedgerStateDep, SessionContextDep, not_found

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=Profile)
async def get_my_profile(state: LedgerStateDep) -> Profile:
    """Profile of the account named in ``X-Ledger-Account``."""
    profile = await state.refresh_profile()
    if profile is None:
        raise not_found("Profile")
    return profile


@router.get("/address/{address}", response_model=Profile)
async def get_profile_by_address(address: str, ctx: SessionContextDep) -> Profile:
    profile = await profile_service.get_profile_by_address(ctx, address)
    if profile is None:
        raise not_found("Profile")
    return profile


@router.get("/username/{username}")
async def check_username(username: str, ctx: SessionContextDep) -> dict[str, object]:
    return {"username": username, "exists": await profile_service.username_exists(ctx, username)}


@router.get("/{token_id}", response_model=Profile)
async def get_profile(token_id: int, ctx: SessionContextDep) -> Profile:
    profile = await profile_service.get_profile(ctx, token_id)
    if profile is None:
        raise not_found("Profile")
    return profile
