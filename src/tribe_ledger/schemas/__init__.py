# src/tribe_ledger/schemas/__init__.py
"""
Pydantic schemas for ledger entities and their metadata blobs.

Entities are read-through copies of ledger state; metadata models mirror the
JSON blobs stored alongside each entity on the ledger.
"""

from .community import Community, CommunityConfig, CommunityMetadata, JoinPolicy
from .event import EventMetadata, TicketedEvent
from .post import InteractionType, Post, PostKind, PostMetadata, PostPage
from .profile import Profile, ProfileMetadata

__all__ = [
    "Community", "CommunityConfig", "CommunityMetadata", "JoinPolicy",
    "EventMetadata", "TicketedEvent",
    "InteractionType", "Post", "PostKind", "PostMetadata", "PostPage",
    "Profile", "ProfileMetadata",
]
