"""Index bootstrap run once from the app lifespan."""

from __future__ import annotations

from repositories.account_repository import AccountRepository
from repositories.issue_repository import IssueRepository
from repositories.transport_repository import TransportRepository
from shared.logging import get_logger

log = get_logger(__name__)

ACCOUNTS = "accounts"
ISSUES = "issues"
SOLVED_ISSUES = "solved_issues"
TRANSPORT_ENTRIES = "transport_entries"
TRANSPORT_QUERIES = "transport_queries"


async def ensure_indexes(db) -> None:
    await AccountRepository(db[ACCOUNTS]).ensure_indexes()
    await IssueRepository(db[ISSUES], db[SOLVED_ISSUES]).ensure_indexes()
    await TransportRepository(
        db[TRANSPORT_ENTRIES], db[TRANSPORT_QUERIES]
    ).ensure_indexes()
    log.info("mongo_indexes_ensured")
