"""
Leaderboard endpoints.

GET /api/userrank/rankings          - users by score (points*0.7 + issues*0.3)
GET /api/organizationrank/rankings  - organizations by issues solved
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_ranking_service
from schemas.dto.responses.issue import OrganizationRankEntry, UserRankEntry
from services.ranking_service import RankingService

user_router = APIRouter(prefix="/api/userrank", tags=["rankings"])
organization_router = APIRouter(prefix="/api/organizationrank", tags=["rankings"])


@user_router.get("/rankings", response_model=list[UserRankEntry])
async def user_rankings(
    rankings: RankingService = Depends(get_ranking_service),
) -> list[UserRankEntry]:
    return await rankings.user_rankings()


@organization_router.get("/rankings", response_model=list[OrganizationRankEntry])
async def organization_rankings(
    rankings: RankingService = Depends(get_ranking_service),
) -> list[OrganizationRankEntry]:
    return await rankings.organization_rankings()
