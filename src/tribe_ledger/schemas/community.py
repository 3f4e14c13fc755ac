# src/tribe_ledger/schemas/community.py
"""Community-related Pydantic schemas."""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field


class JoinPolicy(IntEnum):
    """How new members may join a community."""

    OPEN = 0
    APPROVAL = 1
    INVITE = 2
    GATED_BY_ASSET = 3


class CommunityMetadata(BaseModel):
    """Free-form attributes stored in the community's metadata blob."""

    description: str = ""
    created_at: str | None = Field(default=None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class AssetRequirement(BaseModel):
    """Collectible a member must hold to join an asset-gated community."""

    contract_address: str
    token_id: int


class Community(BaseModel):
    """A community (tribe) as read from the ledger."""

    id: int
    name: str
    description: str = ""
    join_policy: JoinPolicy = JoinPolicy.OPEN
    entry_fee: int = 0
    member_count: int = 0
    can_merge: bool = False
    admin: str | None = None
    is_active: bool | None = None


class CommunityConfig(BaseModel):
    """Join configuration of a community."""

    join_policy: JoinPolicy
    entry_fee: int
    asset_requirements: list[AssetRequirement] = Field(default_factory=list)
    can_merge: bool = False
