"""Record store contract.

The discussion engine talks to its persistence layer only through this
document-collection interface: records are plain dicts keyed by ``id``,
queried by field equality and ordered by one or more fields.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable
from uuid import uuid4


Record = dict[str, Any]


class StoreError(Exception):
    """Base error for any record store failure."""

    def __init__(self, message: str, code: str = "store_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class StoreUnavailableError(StoreError):
    """Transport or backend failure."""

    def __init__(self, message: str = "Record store unavailable"):
        super().__init__(message, "store_unavailable")


class RecordExistsError(StoreError):
    """Explicit record id is already taken in the collection."""

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection}/{record_id} already exists", "record_exists")


class RecordNotFoundError(StoreError):
    """Record id does not resolve in the collection."""

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection}/{record_id} not found", "record_not_found")


@dataclass(frozen=True)
class Order:
    """Sort key for ``RecordStore.list``."""

    field: str
    descending: bool = False


def asc(field: str) -> Order:
    return Order(field)


def desc(field: str) -> Order:
    return Order(field, descending=True)


def new_record_id() -> str:
    """Generate a store id (UUID4 hex)."""
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(UTC)


@runtime_checkable
class RecordStore(Protocol):
    """Async document store used by every engine component."""

    async def list(
        self,
        collection: str,
        filters: Record | None = None,
        order: list[Order] | None = None,
        limit: int | None = None,
    ) -> list[Record]: ...

    async def get(self, collection: str, record_id: str) -> Record | None: ...

    async def create(
        self,
        collection: str,
        fields: Record,
        record_id: str | None = None,
    ) -> Record:
        """Insert a record.

        An explicit ``record_id`` is written only if absent; a taken id raises
        ``RecordExistsError`` so callers can use it as a uniqueness key.
        """
        ...

    async def update(
        self, collection: str, record_id: str, fields: Record
    ) -> Record: ...

    async def delete(self, collection: str, record_id: str) -> None: ...

    async def increment(
        self,
        collection: str,
        record_id: str,
        field: str,
        delta: int = 1,
        floor: int | None = None,
    ) -> Record: ...


def matches(record: Record, filters: Record | None) -> bool:
    """Equality match of every filter key against the record."""
    if not filters:
        return True
    return all(record.get(key) == value for key, value in filters.items())


def _sort_key(value: Any) -> tuple[int, Any]:
    # None sorts before any real value; bools sort as ints (False < True)
    if value is None:
        return (0, 0)
    if isinstance(value, datetime):
        return (1, value.isoformat())
    return (1, value)


def sort_records(records: list[Record], order: list[Order] | None) -> list[Record]:
    """Stable multi-key sort, applied from the least significant key."""
    if not order:
        return records
    result = list(records)
    for key in reversed(order):
        result.sort(
            key=lambda record, f=key.field: _sort_key(record.get(f)),
            reverse=key.descending,
        )
    return result
