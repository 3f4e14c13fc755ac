# src/tribe_ledger/main.py
"""Main entry point for the tribe ledger API."""

from __future__ import annotations

import logging
from collections import OrderedDict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from tribe_ledger.api.v1 import (
    communities_router,
    events_router,
    posts_router,
    profiles_router,
    system_router,
)
from tribe_ledger.core.settings import settings
from tribe_ledger.services.gateway import get_ledger_gateway

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Read-through view of ledger-backed tribes, posts, events and profiles",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(communities_router, prefix="/api/v1")
app.include_router(posts_router, prefix="/api/v1")
app.include_router(events_router, prefix="/api/v1")
app.include_router(profiles_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    app.state.ledger_states = OrderedDict()
    if settings.ledger_enabled:
        logger.info(
            "Ledger relay %s on chain %s", settings.ledger_rpc_url, settings.ledger_chain_id
        )
    else:
        logger.warning("LEDGER_RPC_URL is not set; ledger endpoints will return 503")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    app.state.ledger_states = OrderedDict()
    if settings.ledger_enabled:
        await get_ledger_gateway().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("tribe_ledger.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
