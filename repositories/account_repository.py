"""
Account repository - the credential store.

All reads return AccountDoc instances (or None). Uniqueness lives in MongoDB
indexes, not in read-then-write checks: create() and link_provider() translate
DuplicateKeyError into DuplicateAccountError naming the colliding field.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from errors import DuplicateAccountError
from schemas.models.account import (
    COUNTER_FIELDS,
    PROVIDER_ID_FIELDS,
    AccountDoc,
    AccountKind,
    AuthProvider,
)
from schemas.models.base import to_object_id
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger
from shared.validators import normalize_email, normalize_handle

log = get_logger(__name__)

# index name -> stored field
_UNIQUE_INDEXES: dict[str, str] = {
    "uniq_kind_email": "email",
    "uniq_kind_handle": "handle_key",
    "uniq_google_id": "google_id",
    "uniq_github_id": "github_id",
    "uniq_org_phone": "profile.phone",
}

_INDEX_NAME_RE = re.compile(r"index:\s*(\S+)")

HANDLE_LABELS: dict[str, str] = {
    AccountKind.USER.value: "username",
    AccountKind.ORGANIZATION.value: "organizationId",
}


def _field_label(stored_field: str, kind: str) -> str:
    """Client-facing name of a unique field."""
    if stored_field == "handle_key":
        return HANDLE_LABELS[kind]
    if stored_field == "profile.phone":
        return "phone"
    return stored_field


class AccountRepository:
    def __init__(self, collection, clock: Clock = utcnow) -> None:
        self._col = collection
        self._clock = clock

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("kind", ASCENDING), ("email", ASCENDING)],
            unique=True,
            name="uniq_kind_email",
        )
        await self._col.create_index(
            [("kind", ASCENDING), ("handle_key", ASCENDING)],
            unique=True,
            name="uniq_kind_handle",
        )
        await self._col.create_index(
            [("google_id", ASCENDING)], unique=True, sparse=True, name="uniq_google_id"
        )
        await self._col.create_index(
            [("github_id", ASCENDING)], unique=True, sparse=True, name="uniq_github_id"
        )
        await self._col.create_index(
            [("profile.phone", ASCENDING)],
            unique=True,
            sparse=True,
            name="uniq_org_phone",
        )

    # ── Reads ────────────────────────────────────────────────────────────────

    async def find_by_id(self, account_id: Any) -> Optional[AccountDoc]:
        oid = to_object_id(account_id)
        if oid is None:
            return None
        return AccountDoc.from_mongo(await self._col.find_one({"_id": oid}))

    async def find_by_email(self, kind: str, email: str) -> Optional[AccountDoc]:
        doc = await self._col.find_one(
            {"kind": AccountKind(kind).value, "email": normalize_email(email)}
        )
        return AccountDoc.from_mongo(doc)

    async def find_by_handle(self, kind: str, handle: str) -> Optional[AccountDoc]:
        doc = await self._col.find_one(
            {"kind": AccountKind(kind).value, "handle_key": normalize_handle(handle)}
        )
        return AccountDoc.from_mongo(doc)

    async def find_by_provider_id(
        self, provider: str, provider_id: str
    ) -> Optional[AccountDoc]:
        if not provider_id:
            return None
        field = PROVIDER_ID_FIELDS[AuthProvider(provider).value]
        return AccountDoc.from_mongo(await self._col.find_one({field: provider_id}))

    async def list_by_kind(self, kind: str) -> list[AccountDoc]:
        cursor = self._col.find({"kind": AccountKind(kind).value}).sort(
            "created_at", ASCENDING
        )
        docs = await cursor.to_list(length=None)
        return [AccountDoc.from_mongo(d) for d in docs]

    # ── Writes ───────────────────────────────────────────────────────────────

    async def create(self, account: AccountDoc) -> AccountDoc:
        """Insert *account* and return it with its generated id.

        Raises:
            DuplicateAccountError: email, handle, phone or a provider id is
                already taken.
        """
        now = self._clock()
        account = account.model_copy(
            update={
                "email": normalize_email(account.email),
                "handle_key": normalize_handle(account.handle),
                "created_at": account.created_at or now,
                "updated_at": now,
            }
        )
        doc = account.to_mongo()
        try:
            result = await self._col.insert_one(doc)
        except DuplicateKeyError as e:
            field = await self._duplicate_field(e, doc)
            log.info("account_duplicate_key", kind=account.kind, field=field)
            raise DuplicateAccountError(field) from e
        return account.model_copy(update={"id": result.inserted_id})

    async def update_verification(
        self,
        account_id: Any,
        set_fields: dict,
        *,
        unset_challenge: bool = False,
        require_unverified: bool = False,
    ) -> bool:
        """Apply a verification-state update.

        With require_unverified the write only lands on an account that is
        still unverified. Returns True when an account matched.
        """
        query: dict = {"_id": to_object_id(account_id)}
        if require_unverified:
            query["verified"] = False
        update: dict = {"$set": {**set_fields, "updated_at": self._clock()}}
        if unset_challenge:
            update["$set"].pop("challenge", None)
            update["$unset"] = {"challenge": ""}
        result = await self._col.update_one(query, update)
        return result.matched_count == 1

    async def link_provider(
        self,
        account_id: Any,
        provider: str,
        provider_id: str,
        *,
        profile_picture: Optional[str] = None,
    ) -> Optional[AccountDoc]:
        """Add *provider* to the account's provider set.

        The provider id is only written when none is stored yet; a picture is
        only written when the account has none.
        """
        provider = AuthProvider(provider).value
        field = PROVIDER_ID_FIELDS[provider]
        oid = to_object_id(account_id)
        now = self._clock()
        try:
            await self._col.update_one(
                {"_id": oid, field: None},
                {"$set": {field: provider_id}},
            )
        except DuplicateKeyError as e:
            raise DuplicateAccountError(field) from e
        if profile_picture:
            await self._col.update_one(
                {"_id": oid, "profile_picture": None},
                {"$set": {"profile_picture": profile_picture}},
            )
        doc = await self._col.find_one_and_update(
            {"_id": oid},
            {"$addToSet": {"providers": provider}, "$set": {"updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        return AccountDoc.from_mongo(doc)

    async def unlink_provider(
        self, account_id: Any, provider: str
    ) -> Optional[AccountDoc]:
        provider = AuthProvider(provider).value
        doc = await self._col.find_one_and_update(
            {"_id": to_object_id(account_id)},
            {
                "$unset": {PROVIDER_ID_FIELDS[provider]: ""},
                "$pull": {"providers": provider},
                "$set": {"updated_at": self._clock()},
            },
            return_document=ReturnDocument.AFTER,
        )
        return AccountDoc.from_mongo(doc)

    async def increment_counter(
        self, account_id: Any, field: str, delta: int = 1
    ) -> bool:
        """Atomically add *delta* to a profile counter.

        Only the counters listed in COUNTER_FIELDS can be touched, and only on
        the kind that owns them.
        """
        kinds = [k for k, fields in COUNTER_FIELDS.items() if field in fields]
        if not kinds:
            raise ValueError(f"{field!r} is not a counter field")
        result = await self._col.update_one(
            {"_id": to_object_id(account_id), "kind": kinds[0]},
            {"$inc": {f"profile.{field}": delta}},
        )
        return result.matched_count == 1

    async def touch_login(self, account_id: Any) -> None:
        await self._col.update_one(
            {"_id": to_object_id(account_id)},
            {"$set": {"last_login_at": self._clock()}},
        )

    # ── Helpers ──────────────────────────────────────────────────────────────

    async def _duplicate_field(self, exc: DuplicateKeyError, doc: dict) -> str:
        """Work out which unique field *exc* is about.

        Tries the driver's keyPattern, then the index name in the message,
        then probes each unique field.
        """
        kind = doc["kind"]
        details = exc.details or {}
        key_pattern = details.get("keyPattern") or {}
        for key in key_pattern:
            if key != "kind" and key in _UNIQUE_INDEXES.values():
                return _field_label(key, kind)

        match = _INDEX_NAME_RE.search(str(exc))
        if match and match.group(1) in _UNIQUE_INDEXES:
            return _field_label(_UNIQUE_INDEXES[match.group(1)], kind)

        probes: list[tuple[str, dict]] = [
            ("email", {"kind": kind, "email": doc["email"]}),
            ("handle_key", {"kind": kind, "handle_key": doc["handle_key"]}),
        ]
        phone = (doc.get("profile") or {}).get("phone")
        if phone is not None:
            probes.append(("profile.phone", {"profile.phone": phone}))
        for field in PROVIDER_ID_FIELDS.values():
            if doc.get(field):
                probes.append((field, {field: doc[field]}))
        for field, query in probes:
            if await self._col.find_one(query, {"_id": 1}) is not None:
                return _field_label(field, kind)
        return "email"
