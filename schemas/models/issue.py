"""
Issue document models.

IssueDoc       - `issues` collection, open reports
SolvedIssueDoc - `solved_issues` collection, reports closed by an organization

An issue moves from `issues` to `solved_issues` when an organization marks it
solved; `issue_code` is unique in each collection.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel, PyObjectId


class IssueDoc(MongoBaseModel):
    """Document model for the `issues` collection."""

    reporter_id: PyObjectId
    title: str
    description: str
    location: str
    image_url: str
    issue_code: str
    created_at: Optional[datetime] = None


class SolvedIssueDoc(MongoBaseModel):
    """Document model for the `solved_issues` collection.

    solved_by holds the organization handle (organizationId), not its _id.
    """

    reporter_id: PyObjectId
    issue_code: str
    title: str = ""
    description: str = ""
    location: str = ""
    image_url: str = ""
    solved_by: str
    solved_at: Optional[datetime] = None
    resolved: bool = True
