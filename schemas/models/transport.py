"""
Transport document models.

TransportEntryDoc - `transport_entries` collection, routes published by agencies
TransportQueryDoc - `transport_queries` collection, availability searches

The route ends are stored as `origin` and `destination`; the HTTP layer calls
them `from` and `to`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel

DEFAULT_FREQUENCY = "Not specified"
DEFAULT_CONTACT_INFO = "Not provided"


class TransportEntryDoc(MongoBaseModel):
    """Document model for the `transport_entries` collection."""

    agency_name: str
    transport_type: str
    origin: str
    destination: str
    departure_times: list[str]
    frequency: str = DEFAULT_FREQUENCY
    fare: float
    contact_info: str = DEFAULT_CONTACT_INFO
    created_at: Optional[datetime] = None

    @property
    def route(self) -> str:
        return f"{self.origin} → {self.destination}"


class TransportQueryDoc(MongoBaseModel):
    origin: str
    destination: str
    transport_type: Optional[str] = None
    queried_at: Optional[datetime] = None
