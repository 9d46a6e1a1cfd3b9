"""Cassandra session for the record store backend.

Uses cassandra-asyncio-driver so the store can ``await session.aexecute()``.
One cluster/session pair is kept per process; ``init_async_cassandra`` also
creates the keyspace and the shared records table when they are missing.
"""

from typing import Any

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from discussion_engine.config import Settings, get_settings
from discussion_engine.store.cassandra import RECORDS_TABLES_CQL


logger = structlog.get_logger(__name__)

# Replicas per datacenter for production keyspaces
PRODUCTION_REPLICAS = 3


def keyspace_replication(settings: Settings) -> dict[str, Any]:
    """Replication options for the discussions keyspace."""
    if settings.is_production:
        return {
            "class": "NetworkTopologyStrategy",
            "datacenter1": PRODUCTION_REPLICAS,
        }
    return {"class": "SimpleStrategy", "replication_factor": 1}


def keyspace_cql(settings: Settings) -> str:
    options = ", ".join(
        f"'{key}': {value!r}"
        for key, value in keyspace_replication(settings).items()
    )
    return (
        f"CREATE KEYSPACE IF NOT EXISTS {settings.cassandra_keyspace} "
        f"WITH replication = {{{options}}} AND durable_writes = true"
    )


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session: Any = None

    @classmethod
    def connect(cls, settings: Settings):
        """Open the session, reusing an existing one.

        Raises:
            ConnectionError: If no contact point accepts the connection
        """
        if cls._session is not None:
            return cls._session

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            session = cls._cluster.connect()
        except Exception as e:
            logger.error(
                "record_store_connection_failed",
                hosts=settings.cassandra_hosts,
                error=str(e),
            )
            cls._cluster.shutdown()
            cls._cluster = None
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        session.default_timeout = settings.cassandra_request_timeout
        cls._session = session
        logger.info(
            "record_store_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
        )
        return session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("record_store_disconnected")


async def init_async_cassandra(settings: Settings | None = None):
    """Connect and make sure the keyspace and records table exist.

    Returns:
        Session bound to the discussions keyspace, with ``aexecute()``
    """
    settings = settings or get_settings()
    keyspace = settings.cassandra_keyspace

    session = AsyncCassandraConnection.connect(settings)
    await session.aexecute(keyspace_cql(settings))
    session.set_keyspace(keyspace)
    for cql in RECORDS_TABLES_CQL:
        await session.aexecute(cql.format(keyspace=keyspace))

    logger.info("record_store_schema_ready", keyspace=keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
