"""
Core value types for the rqlite SDK.

Peers, consistency levels and API operations are small closed types so that
invalid addresses or levels are rejected where they enter the SDK.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlsplit

from .exceptions import ConfigurationError

DEFAULT_PORT = 4001


@dataclass(frozen=True, order=True)
class Peer:
    """
    A single cluster node's HTTP API endpoint.

    Attributes:
        host: Hostname or IP address
        port: TCP port of the HTTP API
    """

    host: str
    port: int = DEFAULT_PORT

    def __post_init__(self) -> None:
        if not self.host:
            raise ConfigurationError("peer host must not be empty")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"invalid peer port: {self.port}")

    @classmethod
    def parse(cls, address: str, default_port: int = DEFAULT_PORT) -> "Peer":
        """
        Parse ``host[:port]`` or a full URL into a peer.

        Args:
            address: Address such as ``host1:4001`` or ``http://host1:4001``
            default_port: Port used when the address carries none

        Raises:
            ConfigurationError: If the address has no host or a bad port
        """
        address = address.strip()
        if "://" not in address:
            address = f"//{address}"
        try:
            parts = urlsplit(address)
            port = parts.port
        except ValueError as e:
            raise ConfigurationError(f"invalid peer address {address!r}: {e}") from e
        if not parts.hostname:
            raise ConfigurationError(f"invalid peer address {address!r}: no host")
        return cls(host=parts.hostname, port=port if port is not None else default_port)

    @property
    def address(self) -> str:
        """The ``host:port`` form used in URLs."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    def __str__(self) -> str:
        return self.address


class ConsistencyLevel(StrEnum):
    """Read consistency requested from the store."""

    NONE = "none"
    WEAK = "weak"
    STRONG = "strong"

    @classmethod
    def parse(cls, value: "ConsistencyLevel | str") -> "ConsistencyLevel":
        """Convert a level name to a level, rejecting unknown names."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(f"unknown consistency level: {value!r}") from None


class ApiOperation(StrEnum):
    """HTTP API operations understood by the store, valued by their path."""

    STATUS = "/status"
    NODES = "/nodes"
    QUERY = "/db/query"
    EXECUTE = "/db/execute"
    REQUEST = "/db/request"

    @property
    def path(self) -> str:
        return self.value

    @property
    def method(self) -> str:
        """HTTP method used for the operation."""
        return "GET" if self in (ApiOperation.STATUS, ApiOperation.NODES) else "POST"

    @property
    def is_data(self) -> bool:
        """True for operations that carry statements and consistency flags."""
        return self.method == "POST"


__all__ = ["ApiOperation", "ConsistencyLevel", "DEFAULT_PORT", "Peer"]
