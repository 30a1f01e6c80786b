"""
Transport endpoints.

POST /api/entry/submit                     - publish a route for an agency
GET  /api/entry/all, /api/entry/           - every published route
GET  /api/entry/organization/{agency_name} - an agency's routes with stats
POST /api/query/transport                  - search routes between two places
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_transport_service
from schemas.dto.requests.transport import TransportEntryRequest, TransportQueryRequest
from schemas.dto.responses.common import ERROR_RESPONSES
from schemas.dto.responses.transport import (
    AgencyTransportResponse,
    CreateTransportEntryResponse,
    SearchTerms,
    TransportAvailabilityResponse,
    TransportEntryResponse,
)
from services.transport_service import (
    MATCH_EXACT,
    MATCH_NONE,
    MATCH_PARTIAL,
    MATCH_RELATED,
    TransportService,
)

entry_router = APIRouter(prefix="/api/entry", tags=["transport"], responses=ERROR_RESPONSES)
query_router = APIRouter(prefix="/api/query", tags=["transport"], responses=ERROR_RESPONSES)

_AVAILABILITY_MESSAGES = {
    MATCH_EXACT: "Transport options found",
    MATCH_PARTIAL: "Transport options found",
    MATCH_RELATED: "No exact matches found. Showing related routes",
    MATCH_NONE: "No transport options found",
}


@entry_router.post("/submit", status_code=201, response_model=CreateTransportEntryResponse)
async def submit_entry(
    body: TransportEntryRequest,
    transports: TransportService = Depends(get_transport_service),
) -> CreateTransportEntryResponse:
    entry = await transports.create_entry(body)
    return CreateTransportEntryResponse(
        message="Transport option created successfully",
        data=TransportEntryResponse.from_doc(entry),
    )


@entry_router.get("/all", response_model=list[TransportEntryResponse])
@entry_router.get("/", response_model=list[TransportEntryResponse])
async def list_entries(
    transports: TransportService = Depends(get_transport_service),
) -> list[TransportEntryResponse]:
    return [TransportEntryResponse.from_doc(e) for e in await transports.list_entries()]


@entry_router.get("/organization/{agency_name}", response_model=AgencyTransportResponse)
async def agency_entries(
    agency_name: str,
    transports: TransportService = Depends(get_transport_service),
) -> AgencyTransportResponse:
    summary = await transports.organization_summary(agency_name)
    return AgencyTransportResponse(
        entries=[TransportEntryResponse.from_doc(e) for e in summary.entries],
        stats=summary.stats,
    )


@query_router.post("/transport", response_model=TransportAvailabilityResponse)
async def check_availability(
    body: TransportQueryRequest,
    transports: TransportService = Depends(get_transport_service),
) -> TransportAvailabilityResponse:
    result = await transports.check_availability(
        body.origin, body.destination, body.transport_type
    )
    return TransportAvailabilityResponse(
        message=_AVAILABILITY_MESSAGES[result.match],
        match=result.match,
        data=[TransportEntryResponse.from_doc(e) for e in result.entries],
        search_terms=SearchTerms(
            origin=body.origin,
            destination=body.destination,
            transport_type=body.transport_type,
        ),
    )
