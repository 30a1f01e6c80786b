"""
Shared test fixtures.

Repositories talk to PyMongo's async API; tests run them against mongomock
through a thin awaitable adapter so unique indexes, $addToSet/$pull and
find_one_and_update behave like the real server without a network.
"""

from datetime import datetime, timedelta, timezone
from itertools import islice

import mongomock
import pytest
from fastapi.testclient import TestClient

from factories import (
    RecordingEmailProvider,
    RecordingStorage,
    build_test_app,
    make_settings,
)
from factories import make_org as _make_org
from factories import make_user as _make_user
from repositories.account_repository import AccountRepository
from repositories.issue_repository import IssueRepository
from repositories.transport_repository import TransportRepository
from services.auth_service import AuthService
from services.identity_service import IdentityService
from services.issue_service import IssueService
from services.token_service import TokenService
from services.transport_service import TransportService
from services.verification_service import VerificationService


class AsyncCursor:
    def __init__(self, cursor):
        self._cursor = cursor

    def sort(self, *args, **kwargs):
        self._cursor = self._cursor.sort(*args, **kwargs)
        return self

    async def to_list(self, length=None):
        if length is None:
            return list(self._cursor)
        return list(islice(self._cursor, length))


class AsyncCollection:
    """Awaitable facade over a mongomock collection."""

    def __init__(self, collection):
        self.sync = collection

    async def find_one(self, *args, **kwargs):
        return self.sync.find_one(*args, **kwargs)

    def find(self, *args, **kwargs):
        return AsyncCursor(self.sync.find(*args, **kwargs))

    async def insert_one(self, *args, **kwargs):
        return self.sync.insert_one(*args, **kwargs)

    async def update_one(self, *args, **kwargs):
        return self.sync.update_one(*args, **kwargs)

    async def find_one_and_update(self, *args, **kwargs):
        return self.sync.find_one_and_update(*args, **kwargs)

    async def delete_one(self, *args, **kwargs):
        return self.sync.delete_one(*args, **kwargs)

    async def create_index(self, *args, **kwargs):
        return self.sync.create_index(*args, **kwargs)


class AsyncDatabase:
    def __init__(self, db):
        self.sync = db

    def __getitem__(self, name):
        return AsyncCollection(self.sync[name])


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mongo_db():
    return AsyncDatabase(mongomock.MongoClient().db)


@pytest.fixture
async def account_repo(mongo_db, clock):
    repo = AccountRepository(mongo_db["accounts"], clock)
    await repo.ensure_indexes()
    return repo


@pytest.fixture
async def issue_repo(mongo_db):
    repo = IssueRepository(mongo_db["issues"], mongo_db["solved_issues"])
    await repo.ensure_indexes()
    return repo


@pytest.fixture
async def transport_repo(mongo_db):
    repo = TransportRepository(mongo_db["transport_entries"], mongo_db["transport_queries"])
    await repo.ensure_indexes()
    return repo


@pytest.fixture
def app_settings():
    return make_settings()


@pytest.fixture
def auth_settings(app_settings):
    return app_settings.auth


@pytest.fixture
def verification_service(account_repo, auth_settings, clock):
    return VerificationService(account_repo, auth_settings, clock)


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def make_user():
    return _make_user


@pytest.fixture
def make_org():
    return _make_org


@pytest.fixture
def email_provider():
    return RecordingEmailProvider()


@pytest.fixture
def storage():
    return RecordingStorage()


@pytest.fixture
def token_service(app_settings, clock):
    return TokenService(app_settings.jwt, clock)


@pytest.fixture
def identity_service(account_repo):
    return IdentityService(account_repo)


@pytest.fixture
def auth_service(
    account_repo,
    verification_service,
    identity_service,
    token_service,
    email_provider,
    app_settings,
):
    return AuthService(
        account_repo,
        verification_service,
        identity_service,
        token_service,
        email_provider,
        app_settings,
    )


@pytest.fixture
def issue_service(account_repo, issue_repo, storage, clock):
    return IssueService(account_repo, issue_repo, storage, clock)


@pytest.fixture
def transport_service(transport_repo, clock):
    return TransportService(transport_repo, clock)


@pytest.fixture
def api_client(
    mongo_db, account_repo, issue_repo, app_settings, clock, email_provider, storage
):
    # account_repo and issue_repo are requested for the indexes they create
    app = build_test_app(mongo_db, app_settings, clock, email_provider, storage)
    with TestClient(app) as client:
        yield client
