# src/tribe_ledger/schemas/post.py
"""Post-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class PostKind(str, Enum):
    """Kind of content carried by a post."""

    TEXT = "TEXT"
    IMAGE = "IMAGE"
    EVENT = "EVENT"


class InteractionType(IntEnum):
    """Interaction codes understood by the post minter."""

    LIKE = 0
    DISLIKE = 1
    SHARE = 2
    REPORT = 3


class PostMetadata(BaseModel):
    """Decoded metadata blob of a post."""

    title: str
    content: str
    type: PostKind = PostKind.TEXT
    created_at: str = Field(alias="createdAt")
    image_url: str | None = Field(default=None, alias="imageUrl")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def created_datetime(self) -> datetime:
        """Return ``created_at`` as an aware datetime, epoch when unparseable."""
        try:
            parsed = datetime.fromisoformat(self.created_at.replace("Z", "+00:00"))
        except ValueError:
            return _EPOCH
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed


class Post(BaseModel):
    """A post as read from the ledger."""

    id: int
    creator: str
    community_id: int
    metadata: PostMetadata
    is_gated: bool = False
    collectible_contract: str | None = None
    collectible_id: int = 0
    is_encrypted: bool = False
    access_signer: str | None = None


class PostPage(BaseModel):
    """One page of post identifiers under a community."""

    post_ids: list[int]
    total: int
