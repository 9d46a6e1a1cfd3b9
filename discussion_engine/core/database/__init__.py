"""Database connection module."""

from discussion_engine.core.database.async_cassandra import (
    AsyncCassandraConnection,
    init_async_cassandra,
    keyspace_replication,
    shutdown_async_cassandra,
)


__all__ = [
    "AsyncCassandraConnection",
    "init_async_cassandra",
    "keyspace_replication",
    "shutdown_async_cassandra",
]
