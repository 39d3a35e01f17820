"""
HTTP Connection Implementation for rqlite SDK.

rqlite is stateless over HTTP, so there is no socket-level connection. A
``RqliteConnection`` holds what every request needs: credentials, consistency
level, the cluster topology and a shared ``httpx.AsyncClient``.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import Any, Self, cast

import httpx

from .. import cluster
from ..cluster import ClusterTopology
from ..exceptions import (
    ConnectionClosedError,
    DiscoveryError,
    NotOpenError,
    ResponseError,
    StatementError,
)
from ..protocol.response import decode_queued, decode_response
from ..protocol.statement import Statement, as_statement, encode_statements
from ..results import QueryResult, QueuedWriteResult, WriteResult
from ..trace import TraceSink, Tracer
from ..types import ApiOperation, ConsistencyLevel
from .config import ConnectionConfig
from .executor import MAX_REDIRECTS, RequestExecutor

logger = logging.getLogger(__name__)

StatementLike = Statement | str


class RqliteConnection:
    """
    Connection to an rqlite cluster.

    Requests go to the leader first and fail over to the other peers.
    Call ``open()`` (or use ``async with``) before issuing requests; once
    ``close()`` has been called every operation raises
    ``ConnectionClosedError``.

    Usage:
        async with RqliteConnection("http://localhost:4001?level=strong") as conn:
            await conn.write_one("CREATE TABLE foo (id INTEGER, name TEXT)")
            await conn.write_one("INSERT INTO foo VALUES (?, ?)", 1, "fiona")
            result = await conn.query_one("SELECT id, name FROM foo")
            while result.next():
                print(result.as_map())
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        config: ConnectionConfig | None = None,
        client: httpx.AsyncClient | None = None,
        trace: TraceSink | None = None,
        favor_seed: bool = False,
    ):
        """
        Initialize connection parameters. No I/O happens here.

        Args:
            url: Connection URL; see ``ConnectionConfig.from_url``
            config: Ready-made configuration, used instead of ``url``
            client: Shared HTTP client; the caller keeps ownership of it
            trace: Sink receiving diagnostic trace lines
            favor_seed: Always try the URL's first peer before the leader

        Raises:
            ConfigurationError: If the URL is malformed
        """
        if config is None:
            config = ConnectionConfig.from_url(url or "")
        self._config = config
        self.id = str(uuid.uuid4()).upper()
        self._tracer = Tracer(trace, self.id)
        self.favor_seed = favor_seed

        seed = config.seed
        self._topology = ClusterTopology(leader=seed, other_peers=config.seeds[1:], seed=seed)

        self._client = client
        self._owns_client = client is None
        self._executor: RequestExecutor | None = None
        self._closed = False

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def topology(self) -> ClusterTopology:
        return self._topology

    @property
    def is_open(self) -> bool:
        return self._executor is not None and not self._closed

    @property
    def is_closed(self) -> bool:
        return self._closed

    # Lifecycle

    async def open(self) -> Self:
        """
        Prepare the transport and discover the cluster.

        Discovery is skipped when the URL set ``disableClusterDiscovery``.
        If discovery fails the connection stays usable with the peers from the
        URL, and the ``DiscoveryError`` is raised for the caller to judge.
        """
        self._ensure_not_closed()
        if self._executor is not None:
            return self

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout, max_redirects=MAX_REDIRECTS)
        self._executor = RequestExecutor(
            self._client,
            config=lambda: self._config,
            topology=lambda: self._topology,
            trace=self._tracer,
            favor_seed=self.favor_seed,
        )
        if self._tracer.enabled:
            self._tracer("opened connection to %s", ", ".join(str(p) for p in self._config.seeds))

        if not self._config.disable_cluster_discovery:
            try:
                await self.refresh_cluster()
            except DiscoveryError as e:
                logger.warning("cluster discovery failed, using peers from the URL: %s", e)
                raise
        return self

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._executor = None
        self._tracer("closing connection")
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> Self:
        try:
            await self.open()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _ensure_not_closed(self) -> None:
        if self._closed:
            raise ConnectionClosedError()

    def _require_executor(self) -> RequestExecutor:
        self._ensure_not_closed()
        if self._executor is None:
            raise NotOpenError()
        return self._executor

    # Settings

    @property
    def consistency_level(self) -> ConsistencyLevel:
        self._ensure_not_closed()
        return self._config.consistency_level

    def set_consistency_level(self, level: ConsistencyLevel | str) -> None:
        """
        Change the read consistency for subsequent queries.

        Raises:
            ConfigurationError: If ``level`` is not none, weak or strong
        """
        self._ensure_not_closed()
        self._config = self._config.with_options(consistency_level=ConsistencyLevel.parse(level))

    def set_execution_with_transaction(self, state: bool) -> None:
        """Wrap (or stop wrapping) each statement batch in a transaction."""
        self._ensure_not_closed()
        self._config = self._config.with_options(transaction=bool(state))

    def set_queued_writes(self, state: bool) -> None:
        """
        Send ``write`` batches to the store's write queue.

        Queued writes are acknowledged without per-statement results, so
        ``write`` then returns an empty list; ``queue`` returns the sequence
        number.
        """
        self._ensure_not_closed()
        self._config = self._config.with_options(queued_writes=bool(state))

    # Cluster

    async def refresh_cluster(self) -> ClusterTopology:
        """
        Rediscover the leader and peers.

        On failure the previous topology stays in place.

        Raises:
            DiscoveryError: If no discovery endpoint answered usefully
        """
        executor = self._require_executor()
        self._tracer("refreshing cluster info")
        topology = await cluster.refresh(executor.execute, self._topology, self._tracer)
        self._topology = topology
        return topology

    async def leader(self) -> str:
        """Refresh the topology and return the leader address, "" if unknown."""
        topology = await self.refresh_cluster()
        return str(topology.leader) if topology.leader else ""

    async def peers(self) -> list[str]:
        """Refresh the topology and return every peer address, leader first."""
        topology = await self.refresh_cluster()
        return [str(p) for p in topology.peers]

    # Statements

    async def _send(self, operation: ApiOperation, statements: list[Statement], queue: bool = False) -> bytes:
        executor = self._require_executor()
        self._tracer("%s of %d statement(s)", operation.name, len(statements))
        return await executor.execute(operation, encode_statements(statements), queue=queue)

    async def query(self, statements: Iterable[StatementLike]) -> list[QueryResult]:
        """
        Run a batch of read statements.

        A statement the store rejects keeps its ``error`` in its own result;
        the other results are still returned.
        """
        self._ensure_not_closed()
        batch = [as_statement(s) for s in statements]
        if not batch:
            return []
        body = await self._send(ApiOperation.QUERY, batch)
        return cast(list[QueryResult], decode_response(body, ApiOperation.QUERY))

    async def query_one(self, sql: StatementLike, *parameters: Any) -> QueryResult:
        """
        Run one read statement.

        Raises:
            StatementError: If the store rejected the statement
        """
        statement = _single(sql, parameters)
        result = _only(await self.query([statement]))
        _raise_for_error(result, statement)
        return result

    async def write(self, statements: Iterable[StatementLike]) -> list[WriteResult]:
        """Run a batch of write statements, one ``WriteResult`` per statement."""
        self._ensure_not_closed()
        batch = [as_statement(s) for s in statements]
        if not batch:
            return []
        body = await self._send(ApiOperation.EXECUTE, batch)
        return cast(list[WriteResult], decode_response(body, ApiOperation.EXECUTE))

    async def write_one(self, sql: StatementLike, *parameters: Any) -> WriteResult:
        """
        Run one write statement.

        Raises:
            StatementError: If the store rejected the statement
        """
        statement = _single(sql, parameters)
        result = _only(await self.write([statement]))
        _raise_for_error(result, statement)
        return result

    async def queue(self, statements: Iterable[StatementLike]) -> QueuedWriteResult:
        """
        Hand a batch of writes to the store's write queue.

        The store acknowledges before applying the writes; the returned
        sequence number identifies the queued batch.
        """
        self._ensure_not_closed()
        batch = [as_statement(s) for s in statements]
        if not batch:
            return QueuedWriteResult()
        body = await self._send(ApiOperation.EXECUTE, batch, queue=True)
        return decode_queued(body)

    async def queue_one(self, sql: StatementLike, *parameters: Any) -> QueuedWriteResult:
        return await self.queue([_single(sql, parameters)])

    async def request(self, statements: Iterable[StatementLike]) -> list[QueryResult | WriteResult]:
        """
        Run a mixed batch of reads and writes through ``/db/request``.

        Each slot holds a ``QueryResult`` or a ``WriteResult`` depending on
        what the store returned for that statement.
        """
        self._ensure_not_closed()
        batch = [as_statement(s) for s in statements]
        if not batch:
            return []
        body = await self._send(ApiOperation.REQUEST, batch)
        return decode_response(body, ApiOperation.REQUEST)

    async def request_one(self, sql: StatementLike, *parameters: Any) -> QueryResult | WriteResult:
        statement = _single(sql, parameters)
        result = _only(await self.request([statement]))
        _raise_for_error(result, statement)
        return result

    def __repr__(self) -> str:
        state = "closed" if self._closed else ("open" if self._executor else "new")
        return f"RqliteConnection({self.id}, {state}, peers={[str(p) for p in self._topology.peers]})"


def _single(sql: StatementLike, parameters: tuple[Any, ...]) -> Statement:
    if isinstance(sql, Statement):
        if parameters:
            raise TypeError("parameters must be given to Statement(), not alongside it")
        return sql
    return Statement(sql, *parameters)


def _only(results: list[Any]) -> Any:
    if len(results) != 1:
        raise ResponseError(f"expected 1 result, got {len(results)}")
    return results[0]


def _raise_for_error(result: QueryResult | WriteResult, statement: Statement) -> None:
    if result.error is not None:
        raise StatementError(result.error, sql=statement.sql)


__all__ = ["RqliteConnection"]
