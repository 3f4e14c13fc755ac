# src/tribe_ledger/api/v1/endpoints/posts.py
"""Post and feed endpoints for the tribe ledger API."""

from __future__ import annotations

from fastapi import APIRouter

from tribe_ledger.schemas.post import InteractionType, Post
from tribe_ledger.services import posts as post_service

from ..dependencies import LedgerStateDep, SessionContextDep, not_found, view_or_503

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("/feed", response_model=list[Post])
async def get_feed(state: LedgerStateDep) -> list[Post]:
    """Posts across every community, newest first."""
    await state.refresh_posts()
    return view_or_503(state.views["posts"])


@router.get("/{post_id}", response_model=Post)
async def get_post(post_id: int, ctx: SessionContextDep) -> Post:
    post = await post_service.get_post(ctx, post_id)
    if post is None:
        raise not_found("Post")
    return post


@router.get("/{post_id}/interactions")
async def get_interaction_counts(post_id: int, ctx: SessionContextDep) -> dict[str, int]:
    """Return the count of every interaction type on the post."""
    return {
        kind.name.lower(): await post_service.get_interaction_count(ctx, post_id, kind)
        for kind in InteractionType
    }
