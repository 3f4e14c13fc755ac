# src/tribe_ledger/schemas/event.py
"""Ticketed event Pydantic schemas."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from tribe_ledger.utils.units import from_base_units


class LocationType(str, Enum):
    PHYSICAL = "PHYSICAL"
    VIRTUAL = "VIRTUAL"
    HYBRID = "HYBRID"


class Coordinates(BaseModel):
    latitude: str
    longitude: str


class EventLocation(BaseModel):
    type: LocationType
    physical: str | None = None
    virtual: str | None = None
    address: str | None = None
    coordinates: Coordinates | None = None

    model_config = ConfigDict(extra="allow")


class SplitCapacity(BaseModel):
    physical: int
    virtual: int


class TicketClass(BaseModel):
    """One ticket type offered for an event."""

    name: str
    type: LocationType | None = None
    price: str
    supply: int
    per_wallet_limit: int = Field(alias="perWalletLimit")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class EventMetadata(BaseModel):
    """Decoded metadata blob of a ticketed event.

    ``start_date`` and ``end_date`` are UNIX timestamps in seconds.
    """

    title: str
    description: str = ""
    start_date: int = Field(default=0, alias="startDate")
    end_date: int = Field(default=0, alias="endDate")
    location: EventLocation | None = None
    capacity: int | SplitCapacity = 0
    ticket_types: list[TicketClass] | None = Field(default=None, alias="ticketTypes")
    image_url: str | None = Field(default=None, alias="imageUrl")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class TicketedEvent(BaseModel):
    """A ticketed event as read from the ledger."""

    id: int
    metadata_uri: str
    metadata: EventMetadata
    organizer: str
    max_tickets: int
    tickets_sold: int
    price: int
    active: bool

    @property
    def tickets_remaining(self) -> int:
        return max(0, self.max_tickets - self.tickets_sold)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def price_display(self) -> str:
        """Ticket price as a decimal string in whole units."""
        return from_base_units(self.price)
