"""
Response DTOs for transport endpoints.

TransportEntryResponse        - one published route
CreateTransportEntryResponse  - POST /api/entry/submit (201)
RouteStat / TransportStats    - statistics block of an agency summary
AgencyTransportResponse       - GET /api/entry/organization/{agency_name}
TransportAvailabilityResponse - POST /api/query/transport

Route ends serialize as ``from`` / ``to``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.transport import TransportEntryDoc


class TransportEntryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    agency_name: str
    transport_type: str
    origin: str = Field(alias="from")
    destination: str = Field(alias="to")
    departure_times: list[str]
    frequency: str
    fare: float
    contact_info: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, entry: TransportEntryDoc) -> "TransportEntryResponse":
        return cls(
            id=str(entry.id),
            agency_name=entry.agency_name,
            transport_type=entry.transport_type,
            origin=entry.origin,
            destination=entry.destination,
            departure_times=list(entry.departure_times),
            frequency=entry.frequency,
            fare=entry.fare,
            contact_info=entry.contact_info,
            created_at=entry.created_at,
        )


class CreateTransportEntryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    data: TransportEntryResponse


class RouteStat(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    route: str
    origin: str = Field(alias="from")
    destination: str = Field(alias="to")
    transport_type: str
    count: int


class TransportStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    by_type: dict[str, int]
    routes: list[RouteStat]
    total_routes: int


class AgencyTransportResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entries: list[TransportEntryResponse]
    stats: TransportStats


class SearchTerms(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    origin: str = Field(alias="from")
    destination: str = Field(alias="to")
    transport_type: Optional[str] = None


class TransportAvailabilityResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    match: str
    data: list[TransportEntryResponse]
    search_terms: SearchTerms
