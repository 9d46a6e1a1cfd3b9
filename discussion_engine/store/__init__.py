"""Record store contract and implementations."""

from .base import (
    Order,
    Record,
    RecordExistsError,
    RecordNotFoundError,
    RecordStore,
    StoreError,
    StoreUnavailableError,
    asc,
    desc,
)
from .cassandra import RECORDS_TABLES_CQL, CassandraRecordStore
from .memory import InMemoryRecordStore


__all__ = [
    "RECORDS_TABLES_CQL",
    "CassandraRecordStore",
    "InMemoryRecordStore",
    "Order",
    "Record",
    "RecordExistsError",
    "RecordNotFoundError",
    "RecordStore",
    "StoreError",
    "StoreUnavailableError",
    "asc",
    "desc",
]
