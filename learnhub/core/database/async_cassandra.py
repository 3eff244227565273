"""Async Cassandra connection using cassandra-asyncio-driver.

Provides:
- Connection lifecycle owned by an explicit ``CassandraConnection`` object
- Session with aexecute() for non-blocking queries
- Keyspace and table initialization

The cassandra-asyncio-driver extends the standard cassandra-driver
with a `session.aexecute()` method for async/await support.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from learnhub.communities.models import COMMUNITIES_TABLES_CQL
from learnhub.config import Settings
from learnhub.courses.models import COURSES_TABLES_CQL
from learnhub.enrollments.models import ENROLLMENTS_TABLES_CQL
from learnhub.events.models import EVENTS_TABLES_CQL
from learnhub.posts.models import POSTS_TABLES_CQL


logger = structlog.get_logger(__name__)

# Table groups created at startup, in dependency-free order
SCHEMA_GROUPS: list[tuple[str, list[str]]] = [
    ("courses", COURSES_TABLES_CQL),
    ("enrollments", ENROLLMENTS_TABLES_CQL),
    ("communities", COMMUNITIES_TABLES_CQL),
    ("posts", POSTS_TABLES_CQL),
    ("events", EVENTS_TABLES_CQL),
]


class CassandraConnection:
    """Owns one cluster connection and its session."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._cluster: Cluster | None = None
        self._session = None  # Session type from cassandra_asyncio

    def connect(self):
        """Connect to the cluster (the handshake itself is synchronous).

        Returns:
            Active Cassandra session with aexecute() support

        Raises:
            ConnectionError: If connection fails
        """
        if self._session is not None:
            return self._session

        settings = self.settings
        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        self._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            self._session = self._cluster.connect()
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            self._cluster.shutdown()
            self._cluster = None
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
            protocol_version=settings.cassandra_protocol_version,
        )
        return self._session

    @property
    def session(self):
        return self._session

    def is_connected(self) -> bool:
        return self._session is not None and not self._session.is_shutdown

    def close(self) -> None:
        """Shut down the session and cluster."""
        if self._session is not None:
            self._session.shutdown()
            self._session = None
        if self._cluster is not None:
            self._cluster.shutdown()
            self._cluster = None
            logger.info("cassandra_disconnected")


def keyspace_cql(settings: Settings) -> str:
    """Build the CREATE KEYSPACE statement for the current environment."""
    if settings.is_production:
        replication = (
            "'class': 'NetworkTopologyStrategy', "
            f"'datacenter1': {settings.cassandra_replication_factor}"
        )
    else:
        replication = "'class': 'SimpleStrategy', 'replication_factor': 1"

    return (
        f"CREATE KEYSPACE IF NOT EXISTS {settings.cassandra_keyspace} "
        f"WITH replication = {{{replication}}} AND durable_writes = true"
    )


async def init_schema(session, settings: Settings) -> None:
    """Create the keyspace and every table group if missing."""
    keyspace = settings.cassandra_keyspace
    await session.aexecute(keyspace_cql(settings))
    session.set_keyspace(keyspace)

    for group, statements in SCHEMA_GROUPS:
        for cql_template in statements:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("cassandra_tables_ready", group=group, keyspace=keyspace)


async def init_async_cassandra(settings: Settings) -> CassandraConnection:
    """Connect and bootstrap the schema.

    Returns:
        The connected ``CassandraConnection``; its ``session`` is ready for use.
    """
    connection = CassandraConnection(settings)
    session = connection.connect()
    try:
        await init_schema(session, settings)
    except Exception:
        connection.close()
        raise

    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return connection
