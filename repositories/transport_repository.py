"""
Transport repository - agency routes in `transport_entries`, searches in
`transport_queries`.

Route matching is case-insensitive on the literal search text; terms are
escaped before they reach a regex.
"""

from __future__ import annotations

import re
from typing import Optional

from pymongo import ASCENDING

from schemas.models.transport import TransportEntryDoc, TransportQueryDoc


def _contains(term: str) -> re.Pattern:
    return re.compile(re.escape(term), re.IGNORECASE)


def _equals(term: str) -> re.Pattern:
    return re.compile(f"^{re.escape(term)}$", re.IGNORECASE)


class TransportRepository:
    def __init__(self, entries_collection, queries_collection) -> None:
        self._entries = entries_collection
        self._queries = queries_collection

    async def ensure_indexes(self) -> None:
        await self._entries.create_index([("agency_name", ASCENDING)])
        await self._entries.create_index(
            [("origin", ASCENDING), ("destination", ASCENDING)]
        )
        await self._queries.create_index([("queried_at", ASCENDING)])

    async def insert_entry(self, entry: TransportEntryDoc) -> TransportEntryDoc:
        result = await self._entries.insert_one(entry.to_mongo())
        return entry.model_copy(update={"id": result.inserted_id})

    async def log_query(self, query: TransportQueryDoc) -> TransportQueryDoc:
        result = await self._queries.insert_one(query.to_mongo())
        return query.model_copy(update={"id": result.inserted_id})

    async def list_entries(
        self, agency_name: Optional[str] = None
    ) -> list[TransportEntryDoc]:
        query: dict = {}
        if agency_name is not None:
            query["agency_name"] = agency_name
        return await self._find(query)

    async def find_exact(self, origin: str, destination: str) -> list[TransportEntryDoc]:
        return await self._find(
            {"origin": _equals(origin), "destination": _equals(destination)}
        )

    async def find_partial(
        self, origin: str, destination: str
    ) -> list[TransportEntryDoc]:
        """Entries whose ends contain both terms, in either direction."""
        return await self._find(
            {
                "$or": [
                    {"origin": _contains(origin), "destination": _contains(destination)},
                    {"origin": _contains(destination), "destination": _contains(origin)},
                ]
            }
        )

    async def find_related(self, *terms: str) -> list[TransportEntryDoc]:
        """Entries where either end contains any of *terms*."""
        clauses = []
        for term in terms:
            clauses.append({"origin": _contains(term)})
            clauses.append({"destination": _contains(term)})
        return await self._find({"$or": clauses})

    async def _find(self, query: dict) -> list[TransportEntryDoc]:
        cursor = self._entries.find(query).sort("created_at", ASCENDING)
        return [
            TransportEntryDoc.from_mongo(d) for d in await cursor.to_list(length=None)
        ]
