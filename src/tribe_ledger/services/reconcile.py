"""Turn raw ledger field tuples into typed domain entities.

The ledger answers a read of an empty slot with a well-formed tuple of
default values, indistinguishable at the transport level from a real
entity. Each reconcile function below owns its kind's sentinel rule and
returns ``Absent`` for such slots; nothing else in the package inspects
sentinel fields.

Metadata blobs are decoded defensively: a malformed blob yields a
placeholder entity, never an exception.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from tribe_ledger.core.contracts import ZERO_ADDRESS
from tribe_ledger.schemas.community import (
    AssetRequirement,
    Community,
    CommunityConfig,
    CommunityMetadata,
    JoinPolicy,
)
from tribe_ledger.schemas.event import EventMetadata, TicketedEvent
from tribe_ledger.schemas.post import Post, PostKind, PostMetadata
from tribe_ledger.schemas.profile import Profile, ProfileMetadata
from tribe_ledger.services.gateway import LedgerDecodeError

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

COMMUNITY_FIELDS = (
    "name", "metadata", "admin", "joinType", "entryFee", "memberCount", "canMerge", "isActive",
)
COMMUNITY_CONFIG_FIELDS = ("joinType", "entryFee", "nftRequirements", "canMerge")
ASSET_REQUIREMENT_FIELDS = ("contractAddress", "tokenId")
POST_FIELDS = (
    "creator",
    "tribeId",
    "metadata",
    "isGated",
    "collectibleContract",
    "collectibleId",
    "isEncrypted",
    "accessSigner",
)
EVENT_FIELDS = ("metadataURI", "organizer", "maxTickets", "ticketsSold", "price", "active")
PROFILE_FIELDS = ("username", "metadataURI", "owner")


@dataclass(frozen=True)
class Present(Generic[T]):
    """The slot holds a live entity."""

    entity: T


@dataclass(frozen=True)
class Absent:
    """The slot is empty or invalid according to the kind's sentinel rule."""

    id: int
    reason: str = "sentinel"


Reconciled = Present[T] | Absent


def unpack(raw: Any, names: Sequence[str]) -> dict[str, Any]:
    """Map a positional tuple or a name-keyed mapping onto ``names``.

    Raises:
        LedgerDecodeError: If ``raw`` has neither shape.
    """
    if isinstance(raw, Mapping):
        return {name: raw.get(name) for name in names}
    if isinstance(raw, Sequence) and not isinstance(raw, str | bytes):
        if len(raw) < len(names):
            raise LedgerDecodeError(f"Expected {len(names)} fields, got {len(raw)}")
        return dict(zip(names, raw))
    raise LedgerDecodeError(f"Unexpected raw value of type {type(raw).__name__}")


def as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError) as exc:
        raise LedgerDecodeError(f"Expected an unsigned integer, got {value!r}") from exc


def as_address(value: Any) -> str | None:
    if not value or str(value).lower() == ZERO_ADDRESS:
        return None
    return str(value)


def decode_metadata(blob: Any, model: type[M], placeholder: Callable[[], M]) -> M:
    """Decode a JSON metadata blob into ``model``, or return the placeholder."""
    if isinstance(blob, str | bytes | bytearray):
        try:
            return model.model_validate_json(blob)
        except (ValidationError, ValueError) as exc:
            logger.warning("Could not decode %s blob: %s", model.__name__, exc)
    else:
        logger.warning("Metadata blob for %s is not text: %r", model.__name__, type(blob))
    return placeholder()


def encode_metadata(metadata: BaseModel) -> str:
    """Serialize metadata the way it is stored in the ledger's blob field."""
    return metadata.model_dump_json(by_alias=True, exclude_none=True)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def placeholder_post_metadata() -> PostMetadata:
    return PostMetadata(
        title="Error",
        content="Could not parse post metadata",
        type=PostKind.TEXT,
        created_at=_utc_now_iso(),
    )


def placeholder_event_metadata() -> EventMetadata:
    return EventMetadata(title="Error", description="Could not parse event metadata")


def placeholder_profile_metadata() -> ProfileMetadata:
    return ProfileMetadata(name="Unknown")


def reconcile_community(community_id: int, raw: Any) -> Reconciled[Community]:
    """An empty name with a zero admin marks an unused community slot."""
    fields = unpack(raw, COMMUNITY_FIELDS)
    if not fields["name"] and as_address(fields["admin"]) is None:
        return Absent(community_id)

    # The description is the only metadata attribute surfaced on Community.
    metadata = decode_metadata(fields["metadata"], CommunityMetadata, CommunityMetadata)
    try:
        join_policy = JoinPolicy(as_int(fields["joinType"]))
    except ValueError:
        logger.warning("Community %s has unknown join type %r", community_id, fields["joinType"])
        join_policy = JoinPolicy.OPEN

    is_active = fields["isActive"]
    return Present(
        Community(
            id=community_id,
            name=str(fields["name"]),
            description=metadata.description,
            join_policy=join_policy,
            entry_fee=as_int(fields["entryFee"]),
            member_count=as_int(fields["memberCount"]),
            can_merge=bool(fields["canMerge"]),
            admin=as_address(fields["admin"]),
            is_active=None if is_active is None else bool(is_active),
        )
    )


def reconcile_community_config(raw: Any) -> CommunityConfig:
    fields = unpack(raw, COMMUNITY_CONFIG_FIELDS)
    requirements = []
    for item in fields["nftRequirements"] or []:
        requirement = unpack(item, ASSET_REQUIREMENT_FIELDS)
        requirements.append(
            AssetRequirement(
                contract_address=str(requirement["contractAddress"] or ""),
                token_id=as_int(requirement["tokenId"]),
            )
        )
    return CommunityConfig(
        join_policy=JoinPolicy(as_int(fields["joinType"])),
        entry_fee=as_int(fields["entryFee"]),
        asset_requirements=requirements,
        can_merge=bool(fields["canMerge"]),
    )


def reconcile_post(post_id: int, raw: Any) -> Reconciled[Post]:
    """A zero creator marks an unused post slot."""
    fields = unpack(raw, POST_FIELDS)
    creator = as_address(fields["creator"])
    if creator is None:
        return Absent(post_id)

    return Present(
        Post(
            id=post_id,
            creator=creator,
            community_id=as_int(fields["tribeId"]),
            metadata=decode_metadata(fields["metadata"], PostMetadata, placeholder_post_metadata),
            is_gated=bool(fields["isGated"]),
            collectible_contract=as_address(fields["collectibleContract"]),
            collectible_id=as_int(fields["collectibleId"]),
            is_encrypted=bool(fields["isEncrypted"]),
            access_signer=as_address(fields["accessSigner"]),
        )
    )


def reconcile_event(event_id: int, raw: Any) -> Reconciled[TicketedEvent]:
    """``maxTickets == 0`` marks a nonexistent or invalid event."""
    fields = unpack(raw, EVENT_FIELDS)
    max_tickets = as_int(fields["maxTickets"])
    if max_tickets == 0:
        return Absent(event_id)

    blob = fields["metadataURI"] or ""
    return Present(
        TicketedEvent(
            id=event_id,
            metadata_uri=str(blob),
            metadata=decode_metadata(blob, EventMetadata, placeholder_event_metadata),
            organizer=str(fields["organizer"]),
            max_tickets=max_tickets,
            tickets_sold=as_int(fields["ticketsSold"]),
            price=as_int(fields["price"]),
            active=bool(fields["active"]),
        )
    )


def reconcile_profile(token_id: int, raw: Any) -> Reconciled[Profile]:
    """An empty username marks an unminted profile token."""
    fields = unpack(raw, PROFILE_FIELDS)
    if not fields["username"]:
        return Absent(token_id)

    return Present(
        Profile(
            token_id=token_id,
            username=str(fields["username"]),
            metadata=decode_metadata(
                fields["metadataURI"], ProfileMetadata, placeholder_profile_metadata
            ),
            owner=str(fields["owner"] or ""),
        )
    )
