"""
rqlite SDK - An async Python client for rqlite clusters.

rqlite is a distributed SQLite store replicated with Raft and exposed over
HTTP. This SDK hides the cluster behind a single connection object.

Supports:
- Leader discovery via /status and /nodes, with failover across peers
- Manual redirect handling for POST requests
- Consistency levels (none, weak, strong) and transactional batches
- Parameterized statements and queued writes
- Forward-only result cursors with typed scanning
"""

from typing import Any

from .cluster import ClusterTopology
from .connection.config import ConnectionConfig
from .connection.executor import RequestExecutor
from .connection.http import RqliteConnection
from .exceptions import (
    AllPeersFailedError,
    ConfigurationError,
    ConnectionClosedError,
    CursorStateError,
    DiscoveryError,
    FailureKind,
    NoPeersError,
    NotOpenError,
    PeerFailure,
    ResponseError,
    RqliteError,
    StatementError,
    TypeCoercionError,
)
from .protocol.statement import Statement, encode_statements
from .results import QueryResult, QueuedWriteResult, WriteResult
from .trace import LoggingTraceSink, NullTraceSink, StreamTraceSink, TraceSink, redact_url
from .types import ApiOperation, ConsistencyLevel, Peer

__version__ = "0.1.0"
__all__ = [
    # Connections
    "Rqlite",
    "RqliteConnection",
    "ConnectionConfig",
    "RequestExecutor",
    "connect",
    # Cluster
    "ClusterTopology",
    "Peer",
    "ConsistencyLevel",
    "ApiOperation",
    # Statements & results
    "Statement",
    "encode_statements",
    "QueryResult",
    "WriteResult",
    "QueuedWriteResult",
    # Tracing
    "TraceSink",
    "NullTraceSink",
    "StreamTraceSink",
    "LoggingTraceSink",
    "redact_url",
    # Exceptions
    "RqliteError",
    "ConfigurationError",
    "ConnectionClosedError",
    "NotOpenError",
    "NoPeersError",
    "DiscoveryError",
    "AllPeersFailedError",
    "PeerFailure",
    "FailureKind",
    "ResponseError",
    "StatementError",
    "CursorStateError",
    "TypeCoercionError",
]


class Rqlite:
    """
    Factory class for creating rqlite connections.

    Usage:
        async with Rqlite.http("http://localhost:4001,http://host2:4001") as conn:
            results = await conn.query(["SELECT * FROM users"])
    """

    @staticmethod
    def http(url: str, **kwargs: Any) -> RqliteConnection:
        """Create a connection (not yet opened)."""
        return RqliteConnection(url, **kwargs)


async def connect(url: str, **kwargs: Any) -> RqliteConnection:
    """Create and open a connection, discovering the cluster."""
    conn = RqliteConnection(url, **kwargs)
    try:
        return await conn.open()
    except BaseException:
        await conn.close()
        raise
