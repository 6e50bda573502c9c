"""Pydantic models representing scraped availability data and API envelopes."""

from __future__ import annotations

import datetime
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

AVAILABLE = "Available"
SOLD_OUT = "Sold Out"


class AvailabilityMode(str, Enum):
    """Extraction strategy requested by the caller."""

    CALENDAR = "calendar"
    CHECK = "check"
    SINGLE = "single"

    @property
    def is_fast_check(self) -> bool:
        return self in (AvailabilityMode.CHECK, AvailabilityMode.SINGLE)


class RoomOption(BaseModel):
    """Entry of the booking engine's room-type dropdown."""

    value: str
    label: str


class DayRecord(BaseModel):
    """Availability of one room on one calendar day."""

    date: str
    price: Optional[str] = None
    available: bool
    iso_date: Optional[datetime.date] = Field(default=None, serialization_alias="isoDate")


class RoomAvailability(BaseModel):
    """Day records for one room, in calendar page traversal order."""

    room: str
    availability: List[DayRecord] = Field(default_factory=list)


class RoomCard(BaseModel):
    """Room listing shown on the search results page."""

    name: str
    status: Literal["Available", "Sold Out"]
    price: str


class FastCheckResult(BaseModel):
    """Outcome of a single-date availability check."""

    date: str
    available: bool
    status: str
    rooms: List[RoomCard] = Field(default_factory=list)


CalendarScanResult = List[RoomAvailability]
AvailabilityPayload = Union[FastCheckResult, List[RoomAvailability]]


class QueryParams(BaseModel):
    """Normalised query echoed back in every response."""

    model_config = ConfigDict(populate_by_name=True)

    mode: AvailabilityMode
    start_date: datetime.date = Field(alias="startDate")
    months: int
    offset: int


class AvailabilityResponse(BaseModel):
    """Envelope returned by the availability service."""

    source: Literal["cache", "live"]
    timestamp: int
    params: QueryParams
    data: AvailabilityPayload


class ErrorResponse(BaseModel):
    """Envelope returned when a scrape fails."""

    error: str
    details: str
