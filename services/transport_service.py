"""
TransportService - agency route entries and availability search.

Availability falls through three tiers and reports which one answered:
exact ends, then partial ends in either direction, then any entry touching
either term. The transport-type filter applies to every tier.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from errors import ValidationError
from repositories.transport_repository import TransportRepository
from schemas.dto.requests.transport import TransportEntryRequest
from schemas.dto.responses.transport import RouteStat, TransportStats
from schemas.models.transport import (
    DEFAULT_CONTACT_INFO,
    DEFAULT_FREQUENCY,
    TransportEntryDoc,
    TransportQueryDoc,
)
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger
from shared.validators import ROUTE_TRANSPORT_TYPES

log = get_logger(__name__)

MATCH_EXACT = "exact"
MATCH_PARTIAL = "partial"
MATCH_RELATED = "related"
MATCH_NONE = "none"

_CANONICAL_TYPES = {t.lower(): t for t in ROUTE_TRANSPORT_TYPES}


@dataclass(frozen=True)
class AgencySummary:
    entries: list[TransportEntryDoc]
    stats: TransportStats


@dataclass(frozen=True)
class AvailabilityResult:
    entries: list[TransportEntryDoc]
    match: str


def build_stats(entries: list[TransportEntryDoc]) -> TransportStats:
    """Per-type counts and unique routes in first-seen order."""
    by_type: dict[str, int] = {}
    routes: dict[str, RouteStat] = {}
    for entry in entries:
        by_type[entry.transport_type] = by_type.get(entry.transport_type, 0) + 1
        stat = routes.get(entry.route)
        if stat is None:
            routes[entry.route] = RouteStat(
                route=entry.route,
                origin=entry.origin,
                destination=entry.destination,
                transport_type=entry.transport_type,
                count=1,
            )
        else:
            stat.count += 1
    return TransportStats(
        total=len(entries),
        by_type=by_type,
        routes=list(routes.values()),
        total_routes=len(routes),
    )


class TransportService:
    def __init__(self, transports: TransportRepository, clock: Clock = utcnow) -> None:
        self._transports = transports
        self._clock = clock

    async def create_entry(self, req: TransportEntryRequest) -> TransportEntryDoc:
        """Publish a route for an agency.

        Raises:
            ValidationError: unknown transport type, no departure times or a
                negative fare.
        """
        transport_type = _CANONICAL_TYPES.get(req.transport_type.lower())
        if transport_type is None:
            raise ValidationError(
                "Transport type must be one of: " + ", ".join(ROUTE_TRANSPORT_TYPES),
                field="transport_type",
            )
        departure_times = [t.strip() for t in req.departure_times if t and t.strip()]
        if not departure_times:
            raise ValidationError(
                "departureTimes must be a non-empty array", field="departure_times"
            )
        if not math.isfinite(req.fare) or req.fare < 0:
            raise ValidationError("Fare must be zero or more", field="fare")

        entry = await self._transports.insert_entry(
            TransportEntryDoc(
                agency_name=req.agency_name,
                transport_type=transport_type,
                origin=req.origin,
                destination=req.destination,
                departure_times=departure_times,
                frequency=req.frequency or DEFAULT_FREQUENCY,
                fare=req.fare,
                contact_info=req.contact_info or DEFAULT_CONTACT_INFO,
                created_at=self._clock(),
            )
        )
        log.info(
            "transport_entry_created",
            entry_id=str(entry.id),
            agency_name=entry.agency_name,
            transport_type=entry.transport_type,
        )
        return entry

    async def list_entries(self) -> list[TransportEntryDoc]:
        return await self._transports.list_entries()

    async def organization_summary(self, agency_name: str) -> AgencySummary:
        if not agency_name.strip():
            raise ValidationError("Agency name is required", field="agency_name")
        entries = await self._transports.list_entries(agency_name)
        return AgencySummary(entries=entries, stats=build_stats(entries))

    async def check_availability(
        self, origin: str, destination: str, transport_type: Optional[str] = None
    ) -> AvailabilityResult:
        origin, destination = origin.strip(), destination.strip()
        if not origin or not destination:
            raise ValidationError('Both "from" and "to" fields are required')
        wanted_type = (transport_type or "").strip().lower() or None
        logged_type = None
        if wanted_type is not None:
            logged_type = _CANONICAL_TYPES.get(wanted_type, transport_type.strip())

        await self._transports.log_query(
            TransportQueryDoc(
                origin=origin,
                destination=destination,
                transport_type=logged_type,
                queried_at=self._clock(),
            )
        )

        match = MATCH_EXACT
        results = await self._transports.find_exact(origin, destination)
        if not results:
            match = MATCH_PARTIAL
            results = await self._transports.find_partial(origin, destination)
        results = _of_type(results, wanted_type)
        if not results:
            match = MATCH_RELATED
            results = _of_type(
                await self._transports.find_related(origin, destination), wanted_type
            )
        if not results:
            match = MATCH_NONE

        log.info(
            "transport_availability_checked",
            match=match,
            results=len(results),
        )
        return AvailabilityResult(entries=results, match=match)


def _of_type(
    entries: list[TransportEntryDoc], wanted_type: Optional[str]
) -> list[TransportEntryDoc]:
    if wanted_type is None:
        return entries
    return [e for e in entries if e.transport_type.lower() == wanted_type]
