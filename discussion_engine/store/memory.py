"""In-memory record store.

Used in tests and for single-process deployments. Records are deep-copied on
the way in and out so callers never share mutable state with the store.
"""

import asyncio
import copy
from collections import defaultdict
from datetime import datetime, timedelta

from .base import (
    Order,
    Record,
    RecordExistsError,
    RecordNotFoundError,
    StoreUnavailableError,
    matches,
    new_record_id,
    sort_records,
    utcnow,
)


class InMemoryRecordStore:
    """Dict-backed implementation of ``RecordStore``.

    ``created_at`` is strictly increasing per store so that "newest first"
    ordering is deterministic even for records created in the same tick.

    ``fail_on`` lets tests simulate backend outages: a set of
    ``(method, collection)`` pairs that raise ``StoreUnavailableError``.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Record]] = defaultdict(dict)
        self._lock = asyncio.Lock()
        self._last_created: datetime | None = None
        self.fail_on: set[tuple[str, str]] = set()

    def _check(self, method: str, collection: str) -> None:
        if (method, collection) in self.fail_on or (method, "*") in self.fail_on:
            raise StoreUnavailableError(f"{method} on {collection} failed")

    def _next_timestamp(self) -> datetime:
        now = utcnow()
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now

    async def list(
        self,
        collection: str,
        filters: Record | None = None,
        order: list[Order] | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        self._check("list", collection)
        records = [
            record
            for record in self._collections[collection].values()
            if matches(record, filters)
        ]
        records = sort_records(records, order)
        if limit is not None:
            records = records[:limit]
        return copy.deepcopy(records)

    async def get(self, collection: str, record_id: str) -> Record | None:
        self._check("get", collection)
        record = self._collections[collection].get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def create(
        self,
        collection: str,
        fields: Record,
        record_id: str | None = None,
    ) -> Record:
        self._check("create", collection)
        if record_id is not None and record_id in self._collections[collection]:
            raise RecordExistsError(collection, record_id)
        record_id = record_id or new_record_id()
        now = self._next_timestamp().isoformat()
        record = {
            **copy.deepcopy(fields),
            "id": record_id,
            "created_at": fields.get("created_at") or now,
            "updated_at": None,
        }
        self._collections[collection][record_id] = record
        return copy.deepcopy(record)

    async def update(self, collection: str, record_id: str, fields: Record) -> Record:
        self._check("update", collection)
        record = self._collections[collection].get(record_id)
        if record is None:
            raise RecordNotFoundError(collection, record_id)
        protected = {"id", "created_at"}
        record.update(
            {k: copy.deepcopy(v) for k, v in fields.items() if k not in protected}
        )
        record["updated_at"] = utcnow().isoformat()
        return copy.deepcopy(record)

    async def delete(self, collection: str, record_id: str) -> None:
        self._check("delete", collection)
        if self._collections[collection].pop(record_id, None) is None:
            raise RecordNotFoundError(collection, record_id)

    async def increment(
        self,
        collection: str,
        record_id: str,
        field: str,
        delta: int = 1,
        floor: int | None = None,
    ) -> Record:
        self._check("increment", collection)
        async with self._lock:
            record = self._collections[collection].get(record_id)
            if record is None:
                raise RecordNotFoundError(collection, record_id)
            value = (record.get(field) or 0) + delta
            if floor is not None:
                value = max(floor, value)
            record[field] = value
            record["updated_at"] = utcnow().isoformat()
            return copy.deepcopy(record)
