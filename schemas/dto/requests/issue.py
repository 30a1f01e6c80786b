"""
Request DTOs for issue endpoints.

MarkSolvedRequest - POST /api/issuesolved/solve

Issue reports arrive as multipart form data (fields + image file) and are
read directly by the route, so they have no body DTO.
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class MarkSolvedRequest(BaseModel):
    """Request body for POST /api/issuesolved/solve.

    ``solved_by`` is the organization handle (organizationId).
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    issue_code: str = Field(
        min_length=1, validation_alias=AliasChoices("issue_code", "issueCode")
    )
    solved_by: str = Field(
        min_length=1, validation_alias=AliasChoices("solved_by", "solvedBy")
    )
    resolved: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("resolved", "IssueSolved")
    )
