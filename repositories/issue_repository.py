"""
Issue repository - open reports in `issues`, closed ones in `solved_issues`.
"""

from __future__ import annotations

from typing import Any, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from errors import ConflictError
from schemas.models.base import to_object_id
from schemas.models.issue import IssueDoc, SolvedIssueDoc


class IssueRepository:
    def __init__(self, issues_collection, solved_collection) -> None:
        self._issues = issues_collection
        self._solved = solved_collection

    async def ensure_indexes(self) -> None:
        await self._issues.create_index(
            [("issue_code", ASCENDING)], unique=True, name="uniq_issue_code"
        )
        await self._issues.create_index(
            [("reporter_id", ASCENDING), ("created_at", DESCENDING)]
        )
        await self._solved.create_index(
            [("issue_code", ASCENDING)], unique=True, name="uniq_solved_issue_code"
        )
        await self._solved.create_index([("solved_by", ASCENDING)])
        await self._solved.create_index([("reporter_id", ASCENDING)])

    async def insert_issue(self, issue: IssueDoc) -> IssueDoc:
        """Insert *issue*.

        Raises:
            ConflictError: the issue code is already in use.
        """
        try:
            result = await self._issues.insert_one(issue.to_mongo())
        except DuplicateKeyError as e:
            raise ConflictError(
                "Issue code already in use", field="issue_code"
            ) from e
        return issue.model_copy(update={"id": result.inserted_id})

    async def code_in_use(self, issue_code: str) -> bool:
        query = {"issue_code": issue_code}
        if await self._issues.find_one(query, {"_id": 1}) is not None:
            return True
        return await self._solved.find_one(query, {"_id": 1}) is not None

    async def find_by_code(self, issue_code: str) -> Optional[IssueDoc]:
        return IssueDoc.from_mongo(
            await self._issues.find_one({"issue_code": issue_code})
        )

    async def find_solved_by_code(self, issue_code: str) -> Optional[SolvedIssueDoc]:
        return SolvedIssueDoc.from_mongo(
            await self._solved.find_one({"issue_code": issue_code})
        )

    async def list_issues(self, reporter_id: Any = None) -> list[IssueDoc]:
        query: dict = {}
        if reporter_id is not None:
            query["reporter_id"] = to_object_id(reporter_id)
        cursor = self._issues.find(query).sort("created_at", DESCENDING)
        return [IssueDoc.from_mongo(d) for d in await cursor.to_list(length=None)]

    async def list_solved(
        self, *, reporter_id: Any = None, solved_by: Optional[str] = None
    ) -> list[SolvedIssueDoc]:
        query: dict = {}
        if reporter_id is not None:
            query["reporter_id"] = to_object_id(reporter_id)
        if solved_by is not None:
            query["solved_by"] = solved_by
        cursor = self._solved.find(query).sort("solved_at", DESCENDING)
        return [
            SolvedIssueDoc.from_mongo(d) for d in await cursor.to_list(length=None)
        ]

    async def move_to_solved(self, solved: SolvedIssueDoc) -> SolvedIssueDoc:
        """Record *solved* and drop the matching open issue.

        Raises:
            ConflictError: the issue was already marked solved.
        """
        try:
            result = await self._solved.insert_one(solved.to_mongo())
        except DuplicateKeyError as e:
            raise ConflictError(
                "Issue already marked as solved", field="issue_code"
            ) from e
        await self._issues.delete_one({"issue_code": solved.issue_code})
        return solved.model_copy(update={"id": result.inserted_id})
