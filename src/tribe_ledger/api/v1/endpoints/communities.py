# src/tribe_ledger/api/v1/endpoints/communities.py
"""Community endpoints for the tribe ledger API."""

from __future__ import annotations

from fastapi import APIRouter, Query

from tribe_ledger.schemas.community import Community, CommunityConfig
from tribe_ledger.schemas.post import PostPage
from tribe_ledger.services import communities as community_service
from tribe_ledger.services import posts as post_service
from tribe_ledger.services.gateway import LedgerError

from ..dependencies import (
    LedgerStateDep,
    SessionContextDep,
    not_found,
    unavailable,
    view_or_503,
)

router = APIRouter(prefix="/communities", tags=["communities"])


@router.get("/", response_model=list[Community])
async def list_communities(state: LedgerStateDep) -> list[Community]:
    """List every live community in id order."""
    await state.refresh_communities()
    return view_or_503(state.views["communities"])


@router.get("/next-id")
async def get_next_community_id(ctx: SessionContextDep) -> dict[str, int]:
    """Return the id the next created community will receive."""
    try:
        return {"next_id": await community_service.get_next_community_id(ctx)}
    except LedgerError as exc:
        raise unavailable(exc) from exc


@router.get("/admin/{address}", response_model=list[Community])
async def list_communities_by_admin(address: str, ctx: SessionContextDep) -> list[Community]:
    return await community_service.get_communities_by_admin(ctx, address)


@router.get("/{community_id}", response_model=Community)
async def get_community(community_id: int, ctx: SessionContextDep) -> Community:
    """Get a specific community by id."""
    community = await community_service.get_community(ctx, community_id)
    if community is None:
        raise not_found("Community")
    return community


@router.get("/{community_id}/config", response_model=CommunityConfig)
async def get_community_config(community_id: int, ctx: SessionContextDep) -> CommunityConfig:
    config = await community_service.get_community_config(ctx, community_id)
    if config is None:
        raise not_found("Community config")
    return config


@router.get("/{community_id}/members/count")
async def get_member_count(community_id: int, ctx: SessionContextDep) -> dict[str, int]:
    try:
        count = await community_service.get_member_count(ctx, community_id)
    except LedgerError as exc:
        raise unavailable(exc) from exc
    return {"community_id": community_id, "member_count": count}


@router.get("/{community_id}/members/{address}")
async def get_membership_status(
    community_id: int,
    address: str,
    ctx: SessionContextDep,
) -> dict[str, object]:
    is_member = await community_service.get_membership_status(ctx, community_id, address)
    return {"community_id": community_id, "address": address, "is_member": is_member}


@router.get("/{community_id}/posts", response_model=PostPage)
async def list_community_post_ids(
    community_id: int,
    ctx: SessionContextDep,
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
) -> PostPage:
    """Return one page of post ids in the community."""
    try:
        return await post_service.get_posts_by_community(ctx, community_id, offset, limit)
    except LedgerError as exc:
        raise unavailable(exc) from exc
