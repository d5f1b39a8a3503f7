"""Cassandra connection module for CourseHub."""

from coursehub.core.database.async_cassandra import (
    AsyncCassandraConnection,
    get_async_cassandra_session,
    init_async_cassandra,
    shutdown_async_cassandra,
)


__all__ = [
    "AsyncCassandraConnection",
    "get_async_cassandra_session",
    "init_async_cassandra",
    "shutdown_async_cassandra",
]
