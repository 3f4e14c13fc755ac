# src/tribe_ledger/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    communities_router,
    events_router,
    posts_router,
    profiles_router,
    system_router,
)

__all__ = [
    "communities_router",
    "posts_router",
    "events_router",
    "profiles_router",
    "system_router",
]
