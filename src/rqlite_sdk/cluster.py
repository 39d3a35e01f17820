"""
Cluster topology: who the leader is, which other peers exist, and in which
order requests should try them.

Discovery asks the cluster itself, through the same failover path as any
other request:

1. ``GET /status`` (richer). The ``store`` section names the leader either as
   an object carrying ``node_id`` or as a bare string; that key is resolved to
   the leader's HTTP API address through ``store.metadata``.
2. ``GET /nodes`` (fallback). A map of node id to
   ``{api_addr, addr, reachable, leader}``; unreachable nodes and nodes
   without an API address are dropped.

A topology is immutable. Refreshing builds a new one and the connection swaps
it in with a single assignment, so readers see either the old or the new
topology, never a mix.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field

from pydantic import BaseModel, TypeAdapter, ValidationError

from .exceptions import ConfigurationError, DiscoveryError, RqliteError
from .trace import Tracer
from .types import ApiOperation, Peer

logger = logging.getLogger(__name__)

Fetch = Callable[[ApiOperation], Awaitable[bytes]]


# Discovery document schemas


class LeaderRef(BaseModel):
    node_id: str = ""
    addr: str = ""


class MetadataEntry(BaseModel):
    api_addr: str = ""


class StoreSection(BaseModel):
    leader: LeaderRef | str | None = None
    metadata: dict[str, MetadataEntry] = {}


class StatusDocument(BaseModel):
    """The parts of ``GET /status`` used for discovery."""

    store: StoreSection


class NodeInfo(BaseModel):
    """One entry of ``GET /nodes``."""

    api_addr: str = ""
    addr: str = ""
    reachable: bool = False
    leader: bool = False


_nodes_adapter: TypeAdapter[dict[str, NodeInfo]] = TypeAdapter(dict[str, NodeInfo])


@dataclass(frozen=True)
class ClusterTopology:
    """
    The client's belief about the cluster.

    Attributes:
        leader: Current leader, if known
        other_peers: Every other known peer, leader excluded, no duplicates
        seed: Bootstrap peer from the connection URL, used by seed-favoring
            ordering
    """

    leader: Peer | None = None
    other_peers: tuple[Peer, ...] = ()
    seed: Peer | None = None
    _leader_first: tuple[Peer, ...] = field(init=False, repr=False, compare=False)
    _seed_first: tuple[Peer, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        others = _unique(p for p in self.other_peers if p != self.leader)
        object.__setattr__(self, "other_peers", others)

        leader_first = ((self.leader,) if self.leader else ()) + others
        object.__setattr__(self, "_leader_first", leader_first)

        if self.seed is None:
            seed_first = leader_first
        else:
            seed_first = _unique([self.seed, *leader_first])
        object.__setattr__(self, "_seed_first", seed_first)

    def ordered_peers(self, favor_seed: bool = False) -> tuple[Peer, ...]:
        """
        Peers in the order requests should try them.

        Default: leader first, then the other peers in their known order; the
        seed keeps its natural position. With ``favor_seed``: the seed first,
        then the leader if it is a different peer, then the rest.
        """
        return self._seed_first if favor_seed else self._leader_first

    @property
    def peers(self) -> tuple[Peer, ...]:
        return self._leader_first

    def with_seed(self, seed: Peer | None) -> "ClusterTopology":
        return ClusterTopology(leader=self.leader, other_peers=self.other_peers, seed=seed)


def _unique(peers: Iterable[Peer]) -> tuple[Peer, ...]:
    return tuple(dict.fromkeys(peers))


def _peer_from_api_addr(api_addr: str) -> Peer:
    try:
        return Peer.parse(api_addr)
    except ConfigurationError as e:
        raise DiscoveryError(f"could not parse API address {api_addr!r}") from e


def parse_status(body: bytes) -> ClusterTopology | None:
    """
    Find the leader in a ``/status`` document.

    Returns:
        A topology with the leader and the other metadata peers, or None if
        the document does not resolve a leader API address

    Raises:
        DiscoveryError: If the body does not match the status schema
    """
    try:
        status = StatusDocument.model_validate_json(body)
    except ValidationError as e:
        raise DiscoveryError("could not decode /status response") from e

    store = status.store
    if isinstance(store.leader, LeaderRef):
        key = store.leader.node_id
    else:
        key = store.leader or ""
    entry = store.metadata.get(key) if key else None
    if entry is None or not entry.api_addr:
        return None

    leader = _peer_from_api_addr(entry.api_addr)
    others = [
        _peer_from_api_addr(meta.api_addr)
        for node, meta in store.metadata.items()
        if node != key and meta.api_addr
    ]
    return ClusterTopology(leader=leader, other_peers=tuple(others))


def parse_nodes(body: bytes) -> ClusterTopology:
    """
    Build a topology from a ``/nodes`` document.

    Raises:
        DiscoveryError: If the body does not match the node-list schema or an
            API address is malformed
    """
    try:
        nodes = _nodes_adapter.validate_json(body)
    except ValidationError as e:
        raise DiscoveryError("could not decode /nodes response") from e

    leader: Peer | None = None
    others: list[Peer] = []
    for node in nodes.values():
        if not node.reachable or not node.api_addr:
            continue
        peer = _peer_from_api_addr(node.api_addr)
        if node.leader:
            leader = peer
        else:
            others.append(peer)
    return ClusterTopology(leader=leader, other_peers=tuple(others))


async def refresh(fetch: Fetch, current: ClusterTopology, trace: Tracer | None = None) -> ClusterTopology:
    """
    Discover the cluster and return a new topology.

    ``current`` is never modified; on failure the caller keeps using it.

    Args:
        fetch: Issues a GET operation against the current peer list
        current: The topology in use, whose seed is carried over
        trace: Optional tracer

    Raises:
        DiscoveryError: If neither endpoint yields a usable topology
    """
    trace = trace or Tracer(None, "-")

    try:
        trace("getting leader from /status")
        discovered = parse_status(await fetch(ApiOperation.STATUS))
    except RqliteError as e:
        trace("/status discovery failed: %s", e)
        discovered = None

    if discovered is None:
        trace("getting leader from /nodes")
        try:
            discovered = parse_nodes(await fetch(ApiOperation.NODES))
        except DiscoveryError:
            raise
        except RqliteError as e:
            raise DiscoveryError(f"could not determine leader from /nodes: {e}") from e
    else:
        trace("leader successfully determined using /status")

    if discovered.leader is None and not discovered.other_peers:
        raise DiscoveryError("discovery found no reachable nodes")

    topology = discovered.with_seed(current.seed)
    if trace.enabled:
        trace("leader: %s", topology.leader)
        for n, other in enumerate(topology.other_peers):
            trace("other peer #%d: %s", n, other)
    logger.debug("cluster topology refreshed: leader=%s peers=%d", topology.leader, len(topology.peers))
    return topology


__all__ = [
    "ClusterTopology",
    "NodeInfo",
    "StatusDocument",
    "parse_nodes",
    "parse_status",
    "refresh",
]
