# src/tribe_ledger/api/v1/endpoints/events.py
"""Ticketed event endpoints for the tribe ledger API."""

from __future__ import annotations

from fastapi import APIRouter

from tribe_ledger.core.contracts import Role
from tribe_ledger.schemas.event import TicketedEvent
from tribe_ledger.services import events as event_service
from tribe_ledger.services import roles as role_service

from ..dependencies import LedgerStateDep, SessionContextDep, not_found, view_or_503

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/", response_model=list[TicketedEvent])
async def list_events(state: LedgerStateDep) -> list[TicketedEvent]:
    await state.refresh_events()
    return view_or_503(state.views["events"])


@router.get("/mine", response_model=list[TicketedEvent])
async def list_my_events(state: LedgerStateDep) -> list[TicketedEvent]:
    """Events organized by the account named in ``X-Ledger-Account``."""
    await state.refresh_user_events()
    return view_or_503(state.views["user_events"])


@router.get("/organizer/{address}", response_model=list[TicketedEvent])
async def list_events_by_organizer(address: str, ctx: SessionContextDep) -> list[TicketedEvent]:
    return await event_service.get_events_by_organizer(ctx, address)


@router.get("/organizer/{address}/role")
async def check_organizer_role(address: str, ctx: SessionContextDep) -> dict[str, object]:
    is_organizer = await role_service.has_role(ctx, address, Role.ORGANIZER)
    return {"address": address, "is_organizer": is_organizer}


@router.get("/{event_id}", response_model=TicketedEvent)
async def get_event(event_id: int, ctx: SessionContextDep) -> TicketedEvent:
    event = await event_service.get_event(ctx, event_id)
    if event is None:
        raise not_found("Event")
    return event


@router.get("/{event_id}/tickets/{address}")
async def get_ticket_balance(
    event_id: int,
    address: str,
    ctx: SessionContextDep,
) -> dict[str, object]:
    balance = await event_service.get_ticket_balance(ctx, address, event_id)
    return {"event_id": event_id, "address": address, "balance": balance}
