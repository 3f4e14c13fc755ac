"""Session-scoped read-through cache of ledger views.

Each view carries its data together with loading/error flags and the time it
was last fetched. Views older than the configured TTL are re-read on the next
refresh. After every confirmed write the relevant views are re-read in full,
so the session observes its own writes once they are mined. Switching the
session context drops every cached view.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from tribe_ledger.core.contracts import Role
from tribe_ledger.core.session import SessionContext
from tribe_ledger.core.settings import settings
from tribe_ledger.schemas.community import Community, JoinPolicy
from tribe_ledger.schemas.event import EventMetadata, TicketedEvent
from tribe_ledger.schemas.post import InteractionType, Post
from tribe_ledger.schemas.profile import Profile, ProfileMetadata
from tribe_ledger.services import communities as communities_service
from tribe_ledger.services import events as events_service
from tribe_ledger.services import posts as posts_service
from tribe_ledger.services import profiles as profiles_service
from tribe_ledger.services import roles as roles_service
from tribe_ledger.services.gateway import LedgerError
from tribe_ledger.services.writes import WriteOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class View(Generic[T]):
    """One cached view and its load status."""

    data: T
    loading: bool = False
    error: str | None = None
    fetched_at: float | None = None

    def is_stale(self, ttl_seconds: float, now: float) -> bool:
        return self.fetched_at is None or now - self.fetched_at >= ttl_seconds


def _empty_views() -> dict[str, View[Any]]:
    return {
        "communities": View(data=[]),
        "posts": View(data=[]),
        "events": View(data=[]),
        "user_events": View(data=[]),
        "profile": View(data=None),
        "is_organizer": View(data=False),
    }


@dataclass
class LedgerState:
    """Cached ledger views for one session context."""

    ctx: SessionContext
    ttl_seconds: float = field(default_factory=lambda: float(settings.cache_ttl_seconds))
    clock: Callable[[], float] = time.time
    views: dict[str, View[Any]] = field(default_factory=_empty_views)

    @property
    def communities(self) -> list[Community]:
        return self.views["communities"].data

    @property
    def posts(self) -> list[Post]:
        return self.views["posts"].data

    @property
    def events(self) -> list[TicketedEvent]:
        return self.views["events"].data

    @property
    def user_events(self) -> list[TicketedEvent]:
        return self.views["user_events"].data

    @property
    def profile(self) -> Profile | None:
        return self.views["profile"].data

    @property
    def is_organizer(self) -> bool:
        return self.views["is_organizer"].data

    def switch_context(self, ctx: SessionContext) -> None:
        """Adopt a new provider/signer and drop every cached view."""
        if ctx == self.ctx:
            return
        logger.info("Session context switched to account=%s chain=%s", ctx.account, ctx.chain_id)
        self.ctx = ctx
        self.views = _empty_views()

    async def _load(
        self,
        name: str,
        loader: Callable[[SessionContext], Awaitable[Any]],
        force: bool,
    ) -> Any:
        view = self.views[name]
        if not force and not view.is_stale(self.ttl_seconds, self.clock()):
            return view.data

        ctx = self.ctx
        view.loading = True
        view.error = None
        try:
            data = await loader(ctx)
        except LedgerError as exc:
            logger.warning("Failed to refresh %s: %s", name, exc)
            if self.views.get(name) is view:
                view.error = str(exc)
            return view.data
        finally:
            view.loading = False

        # A context switch while loading leaves the new context's views alone.
        if self.views.get(name) is not view:
            return data
        view.data = data
        view.fetched_at = self.clock()
        return data

    async def refresh_communities(self, force: bool = False) -> list[Community]:
        return await self._load("communities", communities_service.get_all_communities, force)

    async def refresh_posts(self, force: bool = False) -> list[Post]:
        """Refresh the feed across every known community."""
        community_list = await self.refresh_communities(force)
        ids = [community.id for community in community_list]
        return await self._load("posts", lambda ctx: posts_service.get_feed(ctx, ids), force)

    async def refresh_events(self, force: bool = False) -> list[TicketedEvent]:
        return await self._load("events", events_service.get_all_events, force)

    async def refresh_user_events(self, force: bool = False) -> list[TicketedEvent]:
        async def load(ctx: SessionContext) -> list[TicketedEvent]:
            if not ctx.is_signed_in:
                return []
            return await events_service.get_events_by_organizer(ctx, ctx.account or "")

        return await self._load("user_events", load, force)

    async def refresh_profile(self, force: bool = False) -> Profile | None:
        async def load(ctx: SessionContext) -> Profile | None:
            if not ctx.is_signed_in:
                return None
            return await profiles_service.get_profile_by_address(ctx, ctx.account or "")

        return await self._load("profile", load, force)

    async def refresh_organizer_role(self, force: bool = False) -> bool:
        return await self._load(
            "is_organizer",
            lambda ctx: roles_service.has_role(ctx, ctx.account, Role.ORGANIZER),
            force,
        )

    async def refresh_all(self, force: bool = False) -> None:
        await self.refresh_posts(force)
        await self.refresh_events(force)
        await self.refresh_user_events(force)
        await self.refresh_profile(force)
        await self.refresh_organizer_role(force)
        logger.info("Refreshed ledger state for account=%s", self.ctx.account)

    async def _after_write(
        self, ctx: SessionContext, *refreshers: Callable[..., Awaitable[Any]]
    ) -> None:
        if ctx != self.ctx:
            logger.info("Context switched during write; skipping refresh")
            return
        for refresh in refreshers:
            await refresh(force=True)

    async def create_community(
        self,
        name: str,
        description: str,
        join_policy: JoinPolicy = JoinPolicy.OPEN,
        entry_fee: int = 0,
    ) -> WriteOutcome:
        ctx = self.ctx
        outcome = await communities_service.create_community(
            ctx, name, description, join_policy, entry_fee
        )
        await self._after_write(ctx, self.refresh_posts)
        return outcome

    async def join_community(self, community_id: int) -> WriteOutcome:
        ctx = self.ctx
        outcome = await communities_service.join_community(ctx, community_id)
        await self._after_write(ctx, self.refresh_posts)
        return outcome

    async def leave_community(self, community_id: int) -> WriteOutcome:
        ctx = self.ctx
        outcome = await communities_service.leave_community(ctx, community_id)
        await self._after_write(ctx, self.refresh_posts)
        return outcome

    async def create_text_post(self, community_id: int, title: str, content: str) -> WriteOutcome:
        ctx = self.ctx
        outcome = await posts_service.create_text_post(ctx, community_id, title, content)
        await self._after_write(ctx, self.refresh_posts)
        return outcome

    async def create_image_post(
        self, community_id: int, title: str, content: str, image_url: str
    ) -> WriteOutcome:
        ctx = self.ctx
        outcome = await posts_service.create_image_post(
            ctx, community_id, title, content, image_url
        )
        await self._after_write(ctx, self.refresh_posts)
        return outcome

    async def interact_with_post(
        self, post_id: int, interaction: InteractionType = InteractionType.LIKE
    ) -> WriteOutcome:
        ctx = self.ctx
        outcome = await posts_service.interact_with_post(ctx, post_id, interaction)
        await self._after_write(ctx, self.refresh_posts)
        return outcome

    async def create_event(
        self, metadata: EventMetadata, max_tickets: int, price: str
    ) -> WriteOutcome:
        ctx = self.ctx
        outcome = await events_service.create_event(ctx, metadata, max_tickets, price)
        await self._after_write(ctx, self.refresh_events, self.refresh_user_events)
        return outcome

    async def update_event(self, event_id: int, metadata: EventMetadata) -> WriteOutcome:
        ctx = self.ctx
        outcome = await events_service.update_event(ctx, event_id, metadata)
        await self._after_write(ctx, self.refresh_events, self.refresh_user_events)
        return outcome

    async def purchase_tickets(self, event_id: int, amount: int, price: str) -> WriteOutcome:
        ctx = self.ctx
        outcome = await events_service.purchase_tickets(ctx, event_id, amount, price)
        await self._after_write(ctx, self.refresh_events, self.refresh_user_events)
        return outcome

    async def cancel_event(self, event_id: int) -> WriteOutcome:
        ctx = self.ctx
        outcome = await events_service.cancel_event(ctx, event_id)
        await self._after_write(ctx, self.refresh_events, self.refresh_user_events)
        return outcome

    async def create_profile(self, username: str, metadata: ProfileMetadata) -> WriteOutcome:
        ctx = self.ctx
        outcome = await profiles_service.create_profile(ctx, username, metadata)
        await self._after_write(ctx, self.refresh_profile)
        return outcome

    async def update_profile(self, token_id: int, metadata: ProfileMetadata) -> WriteOutcome:
        ctx = self.ctx
        outcome = await profiles_service.update_profile(ctx, token_id, metadata)
        await self._after_write(ctx, self.refresh_profile)
        return outcome

    async def grant_organizer_role(self, address: str) -> WriteOutcome:
        ctx = self.ctx
        outcome = await roles_service.grant_role(ctx, address, Role.ORGANIZER)
        await self._after_write(ctx, self.refresh_organizer_role)
        return outcome
