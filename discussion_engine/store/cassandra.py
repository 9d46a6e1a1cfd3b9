"""Cassandra-backed record store.

All collections share one table partitioned by collection name. Each row holds
the record as a JSON document, so the engine's schema lives in the entity
classes rather than in CQL. Equality filtering and ordering are applied client
side after reading the collection partition.
"""

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

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


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


# One partition per collection, clustered by record id
RECORDS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.records (
    collection TEXT,
    record_id TEXT,
    data TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((collection), record_id)
)
"""

RECORDS_TABLES_CQL = [RECORDS_TABLE_CQL]


def _dumps(record: Record) -> str:
    return json.dumps(record, default=str, sort_keys=True)


def _was_applied(rows: Any) -> bool:
    """Read the ``[applied]`` column of a lightweight transaction result."""
    row = rows[0] if rows else None
    if row is None:
        return False
    applied = getattr(row, "applied", None)
    if applied is None and isinstance(row, dict):
        applied = row.get("[applied]")
    if applied is None:
        applied = row[0]
    return bool(applied)


class CassandraRecordStore:
    """``RecordStore`` over a Cassandra session with ``aexecute`` support."""

    # Compare-and-set attempts for increment before giving up
    MAX_CAS_ATTEMPTS = 8

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with a Cassandra session (cassandra-asyncio-driver)."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._select_collection = self.session.prepare(f"""
            SELECT record_id, data FROM {self.keyspace}.records
            WHERE collection = ?
        """)

        self._select_record = self.session.prepare(f"""
            SELECT record_id, data FROM {self.keyspace}.records
            WHERE collection = ? AND record_id = ?
        """)

        self._insert_record = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.records
            (collection, record_id, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
        """)

        self._insert_record_if_absent = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.records
            (collection, record_id, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._update_record = self.session.prepare(f"""
            UPDATE {self.keyspace}.records
            SET data = ?, updated_at = ?
            WHERE collection = ? AND record_id = ?
        """)

        self._cas_update_record = self.session.prepare(f"""
            UPDATE {self.keyspace}.records
            SET data = ?, updated_at = ?
            WHERE collection = ? AND record_id = ?
            IF data = ?
        """)

        self._delete_record = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.records
            WHERE collection = ? AND record_id = ?
        """)

    async def _execute(self, statement: Any, params: list[Any]) -> Any:
        try:
            return await self.session.aexecute(statement, params)
        except Exception as e:
            logger.error("cassandra_statement_failed", error=str(e))
            raise StoreUnavailableError(f"Cassandra request failed: {e}") from e

    async def _fetch(
        self, collection: str, record_id: str
    ) -> tuple[Record, str] | None:
        rows = await self._execute(self._select_record, [collection, record_id])
        row = rows[0] if rows else None
        if not row:
            return None
        return json.loads(row.data), row.data

    async def list(
        self,
        collection: str,
        filters: Record | None = None,
        order: list[Order] | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        rows = await self._execute(self._select_collection, [collection])
        records = [json.loads(row.data) for row in rows]
        records = sort_records([r for r in records if matches(r, filters)], order)
        if limit is not None:
            records = records[:limit]
        return records

    async def get(self, collection: str, record_id: str) -> Record | None:
        fetched = await self._fetch(collection, record_id)
        return fetched[0] if fetched else None

    async def create(
        self,
        collection: str,
        fields: Record,
        record_id: str | None = None,
    ) -> Record:
        explicit = record_id is not None
        record_id = record_id or new_record_id()
        now = utcnow()
        record = {
            **fields,
            "id": record_id,
            "created_at": fields.get("created_at") or now.isoformat(),
            "updated_at": None,
        }
        params = [collection, record_id, _dumps(record), now, None]
        if not explicit:
            await self._execute(self._insert_record, params)
            return record
        rows = await self._execute(self._insert_record_if_absent, params)
        if not _was_applied(rows):
            raise RecordExistsError(collection, record_id)
        return record

    async def update(self, collection: str, record_id: str, fields: Record) -> Record:
        fetched = await self._fetch(collection, record_id)
        if fetched is None:
            raise RecordNotFoundError(collection, record_id)
        record, _ = fetched
        now = utcnow()
        protected = ("id", "created_at")
        record.update({k: v for k, v in fields.items() if k not in protected})
        record["updated_at"] = now.isoformat()
        await self._execute(
            self._update_record,
            [_dumps(record), now, collection, record_id],
        )
        return record

    async def delete(self, collection: str, record_id: str) -> None:
        if await self._fetch(collection, record_id) is None:
            raise RecordNotFoundError(collection, record_id)
        await self._execute(self._delete_record, [collection, record_id])

    async def increment(
        self,
        collection: str,
        record_id: str,
        field: str,
        delta: int = 1,
        floor: int | None = None,
    ) -> Record:
        """Apply ``delta`` with a lightweight-transaction compare-and-set loop."""
        for attempt in range(1, self.MAX_CAS_ATTEMPTS + 1):
            fetched = await self._fetch(collection, record_id)
            if fetched is None:
                raise RecordNotFoundError(collection, record_id)
            record, raw = fetched
            value = (record.get(field) or 0) + delta
            if floor is not None:
                value = max(floor, value)
            now: datetime = utcnow()
            record[field] = value
            record["updated_at"] = now.isoformat()
            rows = await self._execute(
                self._cas_update_record,
                [_dumps(record), now, collection, record_id, raw],
            )
            if _was_applied(rows):
                return record
            logger.debug(
                "cassandra_increment_conflict",
                collection=collection,
                record_id=record_id,
                field=field,
                attempt=attempt,
            )
        raise StoreUnavailableError(
            f"Could not increment {collection}/{record_id}.{field}: too much contention"
        )
