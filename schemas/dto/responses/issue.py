"""
Response DTOs for issue and ranking endpoints.

IssueResponse            - one open issue
ReportIssueResponse      - POST /api/issue/issue (201)
SolvedIssueResponse      - one solved issue
MarkSolvedResponse       - POST /api/issuesolved/solve (200)
UserRankEntry            - GET /api/userrank
OrganizationRankEntry    - GET /api/organizationrank
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.issue import IssueDoc, SolvedIssueDoc


class IssueResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    reporter_id: str
    username: Optional[str] = None
    title: str
    description: str
    location: str
    image_url: str
    issue_code: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_doc(
        cls, issue: IssueDoc, username: Optional[str] = None
    ) -> "IssueResponse":
        return cls(
            id=str(issue.id),
            reporter_id=str(issue.reporter_id),
            username=username,
            title=issue.title,
            description=issue.description,
            location=issue.location,
            image_url=issue.image_url,
            issue_code=issue.issue_code,
            created_at=issue.created_at,
        )


class ReportIssueResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    issue: IssueResponse


class SolvedIssueResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    reporter_id: str
    issue_code: str
    title: str
    description: str
    location: str
    image_url: str
    solved_by: str
    solved_at: Optional[datetime] = None
    resolved: bool

    @classmethod
    def from_doc(cls, doc: SolvedIssueDoc) -> "SolvedIssueResponse":
        return cls(
            id=str(doc.id),
            reporter_id=str(doc.reporter_id),
            issue_code=doc.issue_code,
            title=doc.title,
            description=doc.description,
            location=doc.location,
            image_url=doc.image_url,
            solved_by=doc.solved_by,
            solved_at=doc.solved_at,
            resolved=doc.resolved,
        )


class MarkSolvedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    solved_issue: SolvedIssueResponse


class UserRankEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rank: int
    id: str
    username: str
    points: int
    issue_count: int
    score: float


class OrganizationRankEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rank: int
    organization_id: str
    organization_name: str
    issues_solved: int
    email: str
    phone: Optional[int] = None
