"""Contract registry: addresses, emitted event shapes and role identifiers.

The ledger's ABI encoding is handled by the relay; the client only needs to
know which contract to address and which events each contract can emit so
that confirmation logs can be decoded.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tribe_ledger.core.settings import settings

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Role(str, Enum):
    """Role identifiers understood by the role manager contract."""

    ORGANIZER = "ORGANIZER_ROLE"
    ADMIN = "DEFAULT_ADMIN_ROLE"


@dataclass(frozen=True)
class ContractAddresses:
    """Deployed contract addresses for a single chain."""

    tribe_controller: str
    post_minter: str
    event_controller: str
    profile_nft_minter: str
    role_manager: str


def get_contract_addresses(chain_id: int) -> ContractAddresses:
    """Return the contract addresses for ``chain_id``.

    Raises:
        ValueError: If no deployment is configured for the chain.
    """
    if chain_id != settings.ledger_chain_id:
        raise ValueError(f"No contract deployment configured for chain {chain_id}")

    return ContractAddresses(
        tribe_controller=settings.tribe_controller_address,
        post_minter=settings.post_minter_address,
        event_controller=settings.event_controller_address,
        profile_nft_minter=settings.profile_nft_minter_address,
        role_manager=settings.role_manager_address,
    )


@dataclass(frozen=True)
class DecodedEvent:
    """A confirmation log decoded against a known event shape."""

    name: str
    args: tuple[Any, ...]
    fields: Mapping[str, Any]


@dataclass(frozen=True)
class ContractInterface:
    """Event shapes a single contract may emit."""

    name: str
    events: Mapping[str, Sequence[str]]

    def decode_log(self, log: Any, *, address: str | None = None) -> DecodedEvent | None:
        """Decode ``log`` if it is one of this contract's events.

        Logs emitted by another address, with an unknown name, or whose
        argument count does not match the shape yield ``None``.
        """
        if address and log.address and log.address.lower() != address.lower():
            return None

        shape = self.events.get(log.event or "")
        if shape is None:
            return None

        args = tuple(log.args)
        if len(args) != len(shape):
            logger.debug(
                "Log %s from %s has %d args, expected %d",
                log.event,
                self.name,
                len(args),
                len(shape),
            )
            return None

        return DecodedEvent(name=log.event, args=args, fields=dict(zip(shape, args)))


TRIBE_CONTROLLER = ContractInterface(
    name="TribeController",
    events={
        "TribeCreated": ("tribeId", "name", "admin", "joinType"),
        "MemberJoined": ("tribeId", "member"),
        "MemberRejected": ("tribeId", "member"),
        "TribeConfigUpdated": ("tribeId", "joinType", "entryFee"),
    },
)

POST_MINTER = ContractInterface(
    name="PostMinter",
    events={
        "PostCreated": ("postId", "creator", "tribeId", "metadata"),
        "PostInteraction": ("postId", "user", "interactionType"),
    },
)

EVENT_CONTROLLER = ContractInterface(
    name="EventController",
    events={
        "EventCreated": ("eventId", "organizer", "metadataURI", "maxTickets", "price"),
        "TicketsPurchased": ("eventId", "buyer", "amount"),
        "EventCancelled": ("eventId",),
        "EventMetadataUpdated": ("eventId", "metadataURI"),
        "TransferSingle": ("operator", "from", "to", "id", "value"),
    },
)

PROFILE_NFT_MINTER = ContractInterface(
    name="ProfileNFTMinter",
    events={
        "ProfileCreated": ("tokenId", "owner", "username"),
        "ProfileMetadataUpdated": ("tokenId", "metadataURI"),
        "Transfer": ("from", "to", "tokenId"),
    },
)

ROLE_MANAGER = ContractInterface(
    name="RoleManager",
    events={
        "RoleGranted": ("role", "account", "sender"),
        "RoleRevoked": ("role", "account", "sender"),
    },
)
