"""
IssueService - reporting issues and marking them solved.

Reporting uploads the photo through the storage provider before the issue is
written, so a stored issue always has a reachable image. Solving moves the
issue to `solved_issues`, credits the organization and rewards the reporter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from errors import ConflictError, NotFoundError, ValidationError
from infrastructure.storage.protocol import StorageProvider
from repositories.account_repository import AccountRepository
from repositories.issue_repository import IssueRepository
from schemas.models.account import AccountDoc, AccountKind
from schemas.models.issue import IssueDoc, SolvedIssueDoc
from shared.datetime_utils import Clock, utcnow
from shared.generators import generate_issue_code
from shared.logging import get_logger

log = get_logger(__name__)

SOLVE_REWARD_POINTS = 50
_MAX_CODE_ATTEMPTS = 10


@dataclass(frozen=True)
class IssueView:
    issue: IssueDoc
    username: Optional[str]


class IssueService:
    def __init__(
        self,
        accounts: AccountRepository,
        issues: IssueRepository,
        storage: StorageProvider,
        clock: Clock = utcnow,
    ) -> None:
        self._accounts = accounts
        self._issues = issues
        self._storage = storage
        self._clock = clock

    async def report_issue(
        self,
        username: str,
        title: str,
        description: str,
        location: str,
        image_path: Optional[str],
    ) -> IssueView:
        """Create an issue for the user with handle *username*.

        Raises:
            ValidationError: a field or the image is missing.
            NotFoundError: no user with that username.
            StorageError: the image upload failed.
        """
        if not all(v and v.strip() for v in (username, title, description, location)):
            raise ValidationError("All fields are required")
        if not image_path:
            raise ValidationError("Image is required", field="image")

        reporter = await self._accounts.find_by_handle(AccountKind.USER.value, username)
        if reporter is None:
            raise NotFoundError("User not found")

        image_url = await self._storage.upload(image_path)

        for _ in range(_MAX_CODE_ATTEMPTS):
            code = generate_issue_code()
            if await self._issues.code_in_use(code):
                continue
            draft = IssueDoc(
                reporter_id=reporter.id,
                title=title.strip(),
                description=description.strip(),
                location=location.strip(),
                image_url=image_url,
                issue_code=code,
                created_at=self._clock(),
            )
            try:
                issue = await self._issues.insert_issue(draft)
            except ConflictError:
                continue
            break
        else:
            raise ConflictError("Could not allocate an issue code, please retry")

        await self._accounts.increment_counter(reporter.id, "issue_count", 1)
        log.info(
            "issue_reported",
            issue_code=issue.issue_code,
            reporter_id=str(reporter.id),
        )
        return IssueView(issue=issue, username=reporter.handle)

    async def list_issues(self, reporter_id: Any = None) -> list[IssueView]:
        issues = await self._issues.list_issues(reporter_id)
        usernames = await self._usernames({i.reporter_id for i in issues})
        return [IssueView(issue=i, username=usernames.get(i.reporter_id)) for i in issues]

    async def mark_solved(
        self, issue_code: str, solved_by: str, resolved: Optional[bool] = None
    ) -> SolvedIssueDoc:
        """Mark an open issue solved by the organization with handle *solved_by*.

        Raises:
            NotFoundError: unknown issue or organization.
            ConflictError: the issue is already solved.
        """
        issue = await self._issues.find_by_code(issue_code)
        if issue is None:
            if await self._issues.find_solved_by_code(issue_code) is not None:
                raise ConflictError("Issue already marked as solved", field="issue_code")
            raise NotFoundError("Issue not found")

        organization = await self._accounts.find_by_handle(
            AccountKind.ORGANIZATION.value, solved_by
        )
        if organization is None:
            raise NotFoundError("Organization not found")

        solved = await self._issues.move_to_solved(
            SolvedIssueDoc(
                reporter_id=issue.reporter_id,
                issue_code=issue.issue_code,
                title=issue.title,
                description=issue.description,
                location=issue.location,
                image_url=issue.image_url,
                solved_by=organization.handle,
                solved_at=self._clock(),
                resolved=True if resolved is None else resolved,
            )
        )
        await self._accounts.increment_counter(organization.id, "issues_solved", 1)
        await self._accounts.increment_counter(
            issue.reporter_id, "points", SOLVE_REWARD_POINTS
        )
        log.info(
            "issue_solved",
            issue_code=issue_code,
            organization_id=organization.handle,
            reporter_id=str(issue.reporter_id),
        )
        return solved

    async def solved_for_account(self, account: AccountDoc) -> list[SolvedIssueDoc]:
        """Solved issues reported by a user, or solved by an organization."""
        if account.kind == AccountKind.ORGANIZATION.value:
            return await self._issues.list_solved(solved_by=account.handle)
        return await self._issues.list_solved(reporter_id=account.id)

    async def _usernames(self, reporter_ids: set) -> dict:
        names: dict = {}
        for reporter_id in reporter_ids:
            account = await self._accounts.find_by_id(reporter_id)
            if account is not None:
                names[reporter_id] = account.handle
        return names
