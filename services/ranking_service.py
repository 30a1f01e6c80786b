"""Leaderboards for users and organizations."""

from __future__ import annotations

from repositories.account_repository import AccountRepository
from schemas.dto.responses.issue import OrganizationRankEntry, UserRankEntry
from schemas.models.account import AccountKind, Role

POINTS_WEIGHT = 0.7
ISSUE_COUNT_WEIGHT = 0.3


def user_score(points: int, issue_count: int) -> float:
    return round(points * POINTS_WEIGHT + issue_count * ISSUE_COUNT_WEIGHT, 2)


class RankingService:
    def __init__(self, accounts: AccountRepository) -> None:
        self._accounts = accounts

    async def user_rankings(self) -> list[UserRankEntry]:
        users = [
            a
            for a in await self._accounts.list_by_kind(AccountKind.USER.value)
            if a.role == Role.USER.value
        ]
        scored = sorted(
            users,
            key=lambda a: user_score(a.profile.points, a.profile.issue_count),
            reverse=True,
        )
        return [
            UserRankEntry(
                rank=i,
                id=str(a.id),
                username=a.handle,
                points=a.profile.points,
                issue_count=a.profile.issue_count,
                score=user_score(a.profile.points, a.profile.issue_count),
            )
            for i, a in enumerate(scored, start=1)
        ]

    async def organization_rankings(self) -> list[OrganizationRankEntry]:
        orgs = await self._accounts.list_by_kind(AccountKind.ORGANIZATION.value)
        ordered = sorted(orgs, key=lambda a: a.profile.issues_solved, reverse=True)
        return [
            OrganizationRankEntry(
                rank=i,
                organization_id=a.handle,
                organization_name=a.profile.organization_name,
                issues_solved=a.profile.issues_solved,
                email=a.email,
                phone=a.profile.phone,
            )
            for i, a in enumerate(ordered, start=1)
        ]
