"""
Request DTOs for transport endpoints.

TransportEntryRequest  - POST /api/entry/submit
TransportQueryRequest  - POST /api/query/transport

Route ends arrive as ``from`` / ``to``; ``origin`` / ``destination`` are
accepted too.
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TransportEntryRequest(BaseModel):
    """Request body for POST /api/entry/submit.

    Type, departure-time and fare rules are checked by TransportService so the
    error names the offending field.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    agency_name: str = Field(
        min_length=1, validation_alias=AliasChoices("agency_name", "agencyName")
    )
    transport_type: str = Field(
        min_length=1,
        validation_alias=AliasChoices("transport_type", "transportType"),
    )
    origin: str = Field(min_length=1, validation_alias=AliasChoices("from", "origin"))
    destination: str = Field(
        min_length=1, validation_alias=AliasChoices("to", "destination")
    )
    departure_times: list[str] = Field(
        validation_alias=AliasChoices("departure_times", "departureTimes"),
    )
    frequency: Optional[str] = None
    fare: float
    contact_info: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("contact_info", "contactInfo")
    )


class TransportQueryRequest(BaseModel):
    """Request body for POST /api/query/transport."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    origin: str = Field(min_length=1, validation_alias=AliasChoices("from", "origin"))
    destination: str = Field(
        min_length=1, validation_alias=AliasChoices("to", "destination")
    )
    transport_type: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("transport_type", "transportType"),
    )
