"""Post reads and writes against the PostMinter contract.

Posts are listed per community in pages of ids; the feed is composed across
communities and sorted newest first.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from tribe_ledger.core.contracts import POST_MINTER, ZERO_ADDRESS
from tribe_ledger.core.session import SessionContext
from tribe_ledger.core.settings import settings
from tribe_ledger.schemas.post import InteractionType, Post, PostKind, PostMetadata, PostPage
from tribe_ledger.services.compose import compose_across
from tribe_ledger.services.enumerator import Enumerator, FunctionSource, Page, PagedScan
from tribe_ledger.services.gateway import CallOptions, LedgerError
from tribe_ledger.services.reconcile import (
    Present,
    Reconciled,
    as_int,
    encode_metadata,
    reconcile_post,
    unpack,
)
from tribe_ledger.services.writes import (
    WriteAction,
    WriteCoordinator,
    WriteOutcome,
    get_write_coordinator,
    require,
)

__all__ = [
    "fetch_post",
    "get_post",
    "get_posts_by_community",
    "get_community_posts",
    "get_feed",
    "get_posts_by_creator",
    "get_interaction_count",
    "create_post",
    "create_text_post",
    "create_image_post",
    "interact_with_post",
]

logger = logging.getLogger(__name__)


async def fetch_post(ctx: SessionContext, post_id: int) -> Reconciled[Post]:
    raw = await ctx.read(ctx.contracts.post_minter, "getPost", post_id)
    return reconcile_post(post_id, raw)


async def get_post(ctx: SessionContext, post_id: int) -> Post | None:
    """Return the post, or None if it does not exist or cannot be read."""
    try:
        result = await fetch_post(ctx, post_id)
    except LedgerError as exc:
        logger.warning("Error fetching post %s: %s", post_id, exc)
        return None
    return result.entity if isinstance(result, Present) else None


async def get_posts_by_community(
    ctx: SessionContext,
    community_id: int,
    offset: int = 0,
    limit: int = 20,
) -> PostPage:
    """Return one page of post ids. Transport errors propagate for caller retry."""
    raw = await ctx.read(ctx.contracts.post_minter, "getPostsByTribe", community_id, offset, limit)
    fields = unpack(raw, ("postIds", "total"))
    return PostPage(
        post_ids=[as_int(post_id) for post_id in fields["postIds"] or []],
        total=as_int(fields["total"]),
    )


async def get_community_posts(
    ctx: SessionContext,
    community_id: int,
    limit: int | None = None,
) -> list[Post]:
    """Return up to ``limit`` posts of one community.

    A failure listing the community's ids propagates; a failure fetching
    one listed post skips it.
    """

    async def read_page(offset: int, page_size: int) -> Page:
        page = await get_posts_by_community(ctx, community_id, offset, page_size)
        return Page(ids=page.post_ids, total=page.total)

    strategy = PagedScan(read_page, limit=settings.posts_per_community if limit is None else limit)
    source = FunctionSource("post", lambda post_id: fetch_post(ctx, post_id))
    return await Enumerator(strategy).enumerate(source)


def _newest_first(post: Post) -> datetime:
    return post.metadata.created_datetime()


async def get_feed(
    ctx: SessionContext,
    community_ids: Iterable[int],
    limit_per_community: int | None = None,
) -> list[Post]:
    """Posts across ``community_ids``, newest first.

    A community that cannot be read contributes no posts.
    """
    limit = settings.posts_per_community if limit_per_community is None else limit_per_community
    return await compose_across(
        community_ids,
        lambda community_id, per_parent: get_community_posts(ctx, community_id, per_parent),
        limit,
        key=_newest_first,
    )


async def get_posts_by_creator(
    ctx: SessionContext,
    creator: str,
    community_ids: Iterable[int],
) -> list[Post]:
    feed = await get_feed(ctx, community_ids)
    return [post for post in feed if post.creator.lower() == creator.lower()]


async def get_interaction_count(
    ctx: SessionContext,
    post_id: int,
    interaction: InteractionType = InteractionType.LIKE,
) -> int:
    try:
        count = await ctx.read(ctx.contracts.post_minter, "getInteractionCount", post_id, interaction)
        return as_int(count)
    except LedgerError as exc:
        logger.warning("Error fetching interaction count for post %s: %s", post_id, exc)
        return 0


async def create_post(
    ctx: SessionContext,
    community_id: int,
    metadata: PostMetadata,
    *,
    collectible_contract: str | None = None,
    collectible_id: int = 0,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    """Mint a post into ``community_id``; gated when a collectible is given.

    The new id is reported through ``WriteOutcome.created``.
    """
    require(bool(metadata.title.strip()), "Post title must not be empty")

    is_gated = collectible_contract is not None
    action = WriteAction(
        target=ctx.contracts.post_minter,
        method="createPost",
        args=(
            community_id,
            encode_metadata(metadata),
            is_gated,
            collectible_contract or ZERO_ADDRESS,
            collectible_id,
        ),
        options=CallOptions(gas_limit=settings.gas_limit_create),
        interface=POST_MINTER,
    )
    return await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx, action, creation_event="PostCreated"
    )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


async def create_text_post(
    ctx: SessionContext,
    community_id: int,
    title: str,
    content: str,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    metadata = PostMetadata(title=title, content=content, type=PostKind.TEXT, created_at=_now_iso())
    return await create_post(ctx, community_id, metadata, coordinator=coordinator)


async def create_image_post(
    ctx: SessionContext,
    community_id: int,
    title: str,
    content: str,
    image_url: str,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    require(bool(image_url), "Image posts need an image URL")
    metadata = PostMetadata(
        title=title,
        content=content,
        type=PostKind.IMAGE,
        image_url=image_url,
        created_at=_now_iso(),
    )
    return await create_post(ctx, community_id, metadata, coordinator=coordinator)


async def interact_with_post(
    ctx: SessionContext,
    post_id: int,
    interaction: InteractionType = InteractionType.LIKE,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    async def post_exists(check_ctx: SessionContext) -> None:
        result = await fetch_post(check_ctx, post_id)
        require(isinstance(result, Present), f"Post {post_id} does not exist")

    action = WriteAction(
        target=ctx.contracts.post_minter,
        method="interactWithPost",
        args=(post_id, interaction),
        options=CallOptions(gas_limit=settings.gas_limit_default),
        interface=POST_MINTER,
    )
    return await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx, action, preconditions=(post_exists,)
    )
