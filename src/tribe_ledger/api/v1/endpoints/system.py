# src/tribe_ledger/api/v1/endpoints/system.py
"""System and transparency endpoints for the tribe ledger API."""

from __future__ import annotations

import time

from fastapi import APIRouter

from tribe_ledger.core.settings import settings
from tribe_ledger.services.gateway import get_ledger_gateway

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes the relay shared secret; suitable for transparency UIs.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "ledger": {
            "enabled": settings.ledger_enabled,
            "chain_id": settings.ledger_chain_id,
            "rpc_url": settings.ledger_rpc_url,
        },
        "contracts": {
            "tribe_controller": settings.tribe_controller_address,
            "post_minter": settings.post_minter_address,
            "event_controller": settings.event_controller_address,
            "profile_nft_minter": settings.profile_nft_minter_address,
            "role_manager": settings.role_manager_address,
        },
        "scan": {
            "event_scan_max": settings.event_scan_max,
            "posts_per_community": settings.posts_per_community,
            "profile_token_scan_max": settings.profile_token_scan_max,
            "cache_ttl_seconds": settings.cache_ttl_seconds,
            "cache_max_sessions": settings.cache_max_sessions,
        },
    }


@router.get("/ledger/health")
async def get_ledger_health() -> dict[str, object]:
    """Get relay circuit breaker information.

    Returns:
        Dictionary with ledger status and circuit breaker state
    """
    if not settings.ledger_enabled:
        return {"status": "disabled", "enabled": False, "error": "Ledger relay is not configured"}

    breaker = get_ledger_gateway().get_circuit_breaker_status()
    return {
        "status": "healthy" if breaker["state"] == "closed" else "degraded",
        "enabled": True,
        "circuit_breaker": breaker,
        "timestamp": int(time.time()),
    }


@router.get("/ledger/metrics")
async def get_ledger_metrics() -> dict[str, object]:
    """Get relay call metrics and performance data."""
    if not settings.ledger_enabled:
        return {"enabled": False, "error": "Ledger relay is not configured"}
    return get_ledger_gateway().get_metrics()
