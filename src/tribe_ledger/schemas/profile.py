# src/tribe_ledger/schemas/profile.py
"""Profile-related Pydantic schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SocialLinks(BaseModel):
    twitter: str | None = None
    telegram: str | None = None
    discord: str | None = None
    website: str | None = None


class ProfileMetadata(BaseModel):
    """Decoded metadata blob of a profile token."""

    name: str
    bio: str | None = None
    avatar: str | None = None
    cover_image: str | None = Field(default=None, alias="coverImage")
    social_links: SocialLinks | None = Field(default=None, alias="socialLinks")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Profile(BaseModel):
    """A profile token and its owner."""

    token_id: int
    username: str
    metadata: ProfileMetadata
    owner: str
