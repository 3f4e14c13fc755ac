# src/tribe_ledger/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .communities import router as communities_router
from .events import router as events_router
from .posts import router as posts_router
from .profiles import router as profiles_router
from .system import router as system_router

__all__ = [
    "communities_router",
    "posts_router",
    "events_router",
    "profiles_router",
    "system_router",
]
