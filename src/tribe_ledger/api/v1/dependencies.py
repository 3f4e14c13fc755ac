"""Shared API dependencies: ledger gateway, session context and cached state."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Annotated, Any

from fastapi import Depends, Header, HTTPException, Request, status

from tribe_ledger.core.session import SessionContext
from tribe_ledger.core.settings import settings
from tribe_ledger.services.gateway import LedgerGateway, get_ledger_gateway
from tribe_ledger.services.state import LedgerState, View

logger = logging.getLogger(__name__)


def get_gateway() -> LedgerGateway:
    """Return the process-wide gateway.

    Raises:
        HTTPException: 503 if no ledger relay is configured
    """
    if not settings.ledger_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ledger relay is not configured",
        )
    return get_ledger_gateway()


GatewayDep = Annotated[LedgerGateway, Depends(get_gateway)]


def get_session_context(
    gateway: GatewayDep,
    x_ledger_account: Annotated[str | None, Header()] = None,
) -> SessionContext:
    """Build the session context for this request.

    The optional ``X-Ledger-Account`` header selects the account whose
    personal views (profile, organized events, role) are served. Addresses
    are compared case-insensitively, so the account is lowercased here.
    """
    account = x_ledger_account.strip().lower() if x_ledger_account else None
    return SessionContext(
        gateway=gateway,
        chain_id=settings.ledger_chain_id,
        account=account or None,
    )


SessionContextDep = Annotated[SessionContext, Depends(get_session_context)]


def get_ledger_state(request: Request, ctx: SessionContextDep) -> LedgerState:
    """Return the cached state for the request's account, creating it on first use.

    At most ``cache_max_sessions`` states are kept; the least recently used
    one is dropped when a new account arrives.
    """
    states: OrderedDict[str | None, LedgerState] | None = getattr(
        request.app.state, "ledger_states", None
    )
    if states is None:
        states = OrderedDict()
        request.app.state.ledger_states = states

    state = states.get(ctx.account)
    if state is None:
        state = LedgerState(ctx)
        states[ctx.account] = state
        while len(states) > max(1, settings.cache_max_sessions):
            evicted, _ = states.popitem(last=False)
            logger.debug("Evicted cached ledger state for account=%s", evicted)
    else:
        states.move_to_end(ctx.account)
        state.switch_context(ctx)
    return state


LedgerStateDep = Annotated[LedgerState, Depends(get_ledger_state)]


def view_or_503(view: View[Any]) -> Any:
    """Return the view's data, or 503 if its last refresh failed with nothing cached."""
    if view.error and not view.data:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Ledger unavailable: {view.error}",
        )
    return view.data


def not_found(entity: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{entity} not found")


def unavailable(exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Ledger unavailable: {exc}",
    )
