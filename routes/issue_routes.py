"""
Issue endpoints.

POST /api/issue/issue                 - report an issue (multipart, image file)
GET  /api/issue/issues                - all open issues, newest first
GET  /api/issue/issues/user           - open issues of the caller (bearer)
GET  /api/issue/issues/user/{user_id} - open issues of a user
POST /api/issuesolved/solve           - mark an issue solved
GET  /api/issuesolved/user            - solved issues the caller reported (bearer)
GET  /api/issuesolved/organization    - issues the caller solved (bearer, org)
"""

from __future__ import annotations

import os
import tempfile
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from config import AppSettings
from dependencies import (
    get_auth_service,
    get_current_claims,
    get_issue_service,
    get_settings,
)
from errors import ForbiddenError, ValidationError
from schemas.dto.requests.issue import MarkSolvedRequest
from schemas.dto.responses.common import ERROR_RESPONSES
from schemas.dto.responses.issue import (
    IssueResponse,
    MarkSolvedResponse,
    ReportIssueResponse,
    SolvedIssueResponse,
)
from schemas.models.account import AccountKind
from services.auth_service import AuthService
from services.issue_service import IssueService, IssueView
from services.token_service import SessionClaims

router = APIRouter(prefix="/api/issue", tags=["issues"], responses=ERROR_RESPONSES)
solved_router = APIRouter(
    prefix="/api/issuesolved", tags=["issues"], responses=ERROR_RESPONSES
)

_CHUNK_SIZE = 64 * 1024
_ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})


def _issue_response(view: IssueView) -> IssueResponse:
    return IssueResponse.from_doc(view.issue, view.username)


async def _spool_upload(image: UploadFile, max_bytes: int) -> str:
    """Copy *image* to a temporary file and return its path."""
    if image.content_type not in _ALLOWED_IMAGE_TYPES:
        raise ValidationError("Only image uploads are allowed", field="image")
    suffix = os.path.splitext(image.filename or "")[1]
    fd, path = tempfile.mkstemp(prefix="issue-", suffix=suffix)
    written = 0
    try:
        with os.fdopen(fd, "wb") as out:
            while True:
                chunk = await image.read(_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise ValidationError("Image is too large", field="image")
                out.write(chunk)
    except BaseException:
        os.unlink(path)
        raise
    return path


@router.post("/issue", status_code=201, response_model=ReportIssueResponse)
async def report_issue(
    username: str = Form(""),
    title: str = Form(""),
    description: str = Form(""),
    location: str = Form(""),
    image: Optional[UploadFile] = File(None),
    issues: IssueService = Depends(get_issue_service),
    settings: AppSettings = Depends(get_settings),
) -> ReportIssueResponse:
    if image is None:
        raise ValidationError("Image is required", field="image")
    path = await _spool_upload(image, settings.storage.max_upload_bytes)
    try:
        view = await issues.report_issue(username, title, description, location, path)
    finally:
        # Removed whether or not the upload succeeded
        if os.path.exists(path):
            os.unlink(path)
    return ReportIssueResponse(
        message="Issue reported successfully", issue=_issue_response(view)
    )


@router.get("/issues", response_model=list[IssueResponse])
async def list_issues(
    issues: IssueService = Depends(get_issue_service),
) -> list[IssueResponse]:
    return [_issue_response(v) for v in await issues.list_issues()]


@router.get("/issues/user", response_model=list[IssueResponse])
async def list_my_issues(
    claims: SessionClaims = Depends(get_current_claims),
    issues: IssueService = Depends(get_issue_service),
) -> list[IssueResponse]:
    return [_issue_response(v) for v in await issues.list_issues(claims.account_id)]


@router.get("/issues/user/{user_id}", response_model=list[IssueResponse])
async def list_user_issues(
    user_id: str,
    issues: IssueService = Depends(get_issue_service),
) -> list[IssueResponse]:
    return [_issue_response(v) for v in await issues.list_issues(user_id)]


@solved_router.post("/solve", response_model=MarkSolvedResponse)
async def mark_solved(
    body: MarkSolvedRequest,
    issues: IssueService = Depends(get_issue_service),
) -> MarkSolvedResponse:
    solved = await issues.mark_solved(body.issue_code, body.solved_by, body.resolved)
    return MarkSolvedResponse(
        message="Issue marked as solved, user rewarded, and issue deleted",
        solved_issue=SolvedIssueResponse.from_doc(solved),
    )


@solved_router.get("/user", response_model=list[SolvedIssueResponse])
async def solved_for_user(
    claims: SessionClaims = Depends(get_current_claims),
    auth: AuthService = Depends(get_auth_service),
    issues: IssueService = Depends(get_issue_service),
) -> list[SolvedIssueResponse]:
    account = await auth.get_profile(claims)
    if account.kind != AccountKind.USER.value:
        raise ForbiddenError("Only authenticated users can access resolved issues")
    return [SolvedIssueResponse.from_doc(s) for s in await issues.solved_for_account(account)]


@solved_router.get("/organization", response_model=list[SolvedIssueResponse])
async def solved_for_organization(
    claims: SessionClaims = Depends(get_current_claims),
    auth: AuthService = Depends(get_auth_service),
    issues: IssueService = Depends(get_issue_service),
) -> list[SolvedIssueResponse]:
    account = await auth.get_profile(claims, kind=AccountKind.ORGANIZATION)
    return [SolvedIssueResponse.from_doc(s) for s in await issues.solved_for_account(account)]
