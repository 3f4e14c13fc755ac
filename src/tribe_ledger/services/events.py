"""Ticketed event reads and writes against the EventController contract.

The contract exposes no counter for events, so enumeration is a sentinel
scan: ids are probed from 0 until the first slot with ``maxTickets == 0``.
Event creation refuses ``max_tickets == 0`` for the same reason, since such
an event would read back as the end of the list.
"""

from __future__ import annotations

import logging

from tribe_ledger.core.contracts import EVENT_CONTROLLER, Role
from tribe_ledger.core.session import SessionContext
from tribe_ledger.core.settings import settings
from tribe_ledger.schemas.event import EventMetadata, TicketedEvent
from tribe_ledger.services.enumerator import Enumerator, FunctionSource, SentinelScan
from tribe_ledger.services.gateway import CallOptions, LedgerError
from tribe_ledger.services.reconcile import (
    Present,
    Reconciled,
    as_int,
    encode_metadata,
    reconcile_event,
)
from tribe_ledger.services.roles import require_role
from tribe_ledger.services.writes import (
    WriteAction,
    WriteCoordinator,
    WriteOutcome,
    get_write_coordinator,
    require,
)
from tribe_ledger.utils.units import to_base_units

__all__ = [
    "fetch_event",
    "get_event",
    "event_exists",
    "get_all_events",
    "get_events_by_organizer",
    "get_ticket_balance",
    "create_event",
    "update_event",
    "purchase_tickets",
    "cancel_event",
]

logger = logging.getLogger(__name__)


async def fetch_event(ctx: SessionContext, event_id: int) -> Reconciled[TicketedEvent]:
    raw = await ctx.read(ctx.contracts.event_controller, "events", event_id)
    return reconcile_event(event_id, raw)


async def get_event(ctx: SessionContext, event_id: int) -> TicketedEvent | None:
    """Return the event, or None if it is invalid or cannot be read."""
    try:
        result = await fetch_event(ctx, event_id)
    except LedgerError as exc:
        logger.warning("Error fetching event %s: %s", event_id, exc)
        return None
    if not isinstance(result, Present):
        logger.debug("Event %s has maxTickets=0, considered invalid", event_id)
        return None
    return result.entity


async def event_exists(ctx: SessionContext, event_id: int) -> bool:
    return await get_event(ctx, event_id) is not None


async def get_all_events(ctx: SessionContext, max_events: int | None = None) -> list[TicketedEvent]:
    """Scan events from id 0 up to ``max_events``, stopping at the first invalid one."""
    limit = settings.event_scan_max if max_events is None else max_events
    source = FunctionSource("event", lambda index: fetch_event(ctx, index))
    return await Enumerator(SentinelScan(limit)).enumerate(source)


async def get_events_by_organizer(
    ctx: SessionContext,
    organizer: str,
    max_events: int | None = None,
) -> list[TicketedEvent]:
    events = await get_all_events(ctx, max_events)
    return [event for event in events if event.organizer.lower() == organizer.lower()]


async def get_ticket_balance(ctx: SessionContext, address: str, event_id: int) -> int:
    try:
        balance = await ctx.read(ctx.contracts.event_controller, "balanceOf", address, event_id)
        return as_int(balance)
    except LedgerError as exc:
        logger.warning("Error checking ticket balance for event %s: %s", event_id, exc)
        return 0


async def _require_event(ctx: SessionContext, event_id: int) -> TicketedEvent:
    result = await fetch_event(ctx, event_id)
    require(isinstance(result, Present), f"Event {event_id} does not exist or is invalid")
    return result.entity


def _event_is_active(event_id: int):
    async def check(ctx: SessionContext) -> None:
        event = await _require_event(ctx, event_id)
        require(event.active, f"Event {event_id} is not active")

    return check


def _signer_organizes(event_id: int):
    async def check(ctx: SessionContext) -> None:
        event = await _require_event(ctx, event_id)
        require(ctx.is_account(event.organizer), "Only the event organizer can change this event")

    return check


async def create_event(
    ctx: SessionContext,
    metadata: EventMetadata,
    max_tickets: int,
    price: str,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    """Create an event; the signer must hold the organizer role.

    ``price`` is a human decimal amount. The new id is reported through
    ``WriteOutcome.created``.
    """
    require(max_tickets > 0, "An event needs at least one ticket")
    unit_price = to_base_units(price)

    action = WriteAction(
        target=ctx.contracts.event_controller,
        method="createEvent",
        args=(encode_metadata(metadata), max_tickets, unit_price),
        options=CallOptions(gas_limit=settings.gas_limit_create),
        interface=EVENT_CONTROLLER,
    )
    outcome = await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx,
        action,
        creation_event="EventCreated",
        preconditions=(require_role(Role.ORGANIZER),),
    )
    logger.info("Created event %r: %s", metadata.title, outcome.created)
    return outcome


async def update_event(
    ctx: SessionContext,
    event_id: int,
    metadata: EventMetadata,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    """Replace an active event's metadata; only its organizer may do so."""
    action = WriteAction(
        target=ctx.contracts.event_controller,
        method="updateEventMetadata",
        args=(event_id, encode_metadata(metadata)),
        options=CallOptions(gas_limit=settings.gas_limit_default),
        interface=EVENT_CONTROLLER,
    )
    return await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx,
        action,
        preconditions=(_signer_organizes(event_id), _event_is_active(event_id)),
    )


async def purchase_tickets(
    ctx: SessionContext,
    event_id: int,
    amount: int,
    price: str,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    """Buy ``amount`` tickets, transferring ``price`` (human decimal, total)."""
    require(amount > 0, "Ticket amount must be positive")
    action = WriteAction(
        target=ctx.contracts.event_controller,
        method="purchaseTickets",
        args=(event_id, amount),
        options=CallOptions(gas_limit=settings.gas_limit_default, value=to_base_units(price)),
        interface=EVENT_CONTROLLER,
    )
    return await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx, action, preconditions=(_event_is_active(event_id),)
    )


async def cancel_event(
    ctx: SessionContext,
    event_id: int,
    *,
    coordinator: WriteCoordinator | None = None,
) -> WriteOutcome:
    action = WriteAction(
        target=ctx.contracts.event_controller,
        method="cancelEvent",
        args=(event_id,),
        options=CallOptions(gas_limit=settings.gas_limit_default),
        interface=EVENT_CONTROLLER,
    )
    return await (coordinator or get_write_coordinator()).submit_and_confirm(
        ctx,
        action,
        preconditions=(require_role(Role.ORGANIZER), _signer_organizes(event_id)),
    )
