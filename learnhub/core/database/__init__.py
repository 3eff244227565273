"""Cassandra connection and schema bootstrap."""

from learnhub.core.database.async_cassandra import (
    CassandraConnection,
    init_async_cassandra,
    init_schema,
    keyspace_cql,
)


__all__ = [
    "CassandraConnection",
    "init_async_cassandra",
    "init_schema",
    "keyspace_cql",
]
