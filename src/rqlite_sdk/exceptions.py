"""
rqlite SDK Exceptions.

Custom exception hierarchy for the SDK.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class RqliteError(Exception):
    """Base exception for all rqlite SDK errors."""

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(RqliteError):
    """Raised for a malformed connection URL or an invalid setting."""

    pass


class ConnectionClosedError(RqliteError):
    """Raised when an operation is attempted on a closed connection."""

    def __init__(self, message: str = "connection is closed"):
        super().__init__(message)


class NotOpenError(RqliteError):
    """Raised when an operation needs the network before ``open()`` was called."""

    def __init__(self, message: str = "Not connected. Call open() first."):
        super().__init__(message)


class NoPeersError(RqliteError):
    """Raised when the cluster topology holds no peer to talk to."""

    def __init__(self, message: str = "no cluster peers available"):
        super().__init__(message)


class DiscoveryError(RqliteError):
    """Raised when the cluster leader and peers could not be determined."""

    pass


class FailureKind(StrEnum):
    """Why a single peer attempt failed."""

    CONNECTION = "connection"
    TIMEOUT = "timeout"
    STATUS = "status"
    REDIRECT = "redirect"
    PROTOCOL = "protocol"


@dataclass(frozen=True)
class PeerFailure:
    """
    One failed attempt against one peer.

    Attributes:
        peer: The peer address (``host:port``)
        url: Request URL with credentials redacted
        kind: Failure category
        detail: Human readable cause
        status_code: HTTP status, when the peer answered
    """

    peer: str
    url: str
    kind: FailureKind
    detail: str
    status_code: int | None = None

    def __str__(self) -> str:
        return f"{self.url} failed ({self.kind}): {self.detail}"


class AllPeersFailedError(RqliteError):
    """Raised when every peer in the ordered peer list failed."""

    def __init__(self, failures: list[PeerFailure]):
        self.failures = list(failures)
        lines = ["tried all peers unsuccessfully. here are the results:"]
        for n, failure in enumerate(self.failures):
            lines.append(f"   peer #{n}: {failure}")
        super().__init__("\n".join(lines))


class ResponseError(RqliteError):
    """Raised when a response body cannot be decoded."""

    pass


class StatementError(RqliteError):
    """Raised when the store rejected a single statement."""

    def __init__(self, message: str, sql: str | None = None):
        self.sql = sql
        super().__init__(message)


class CursorStateError(RqliteError):
    """Raised when a result row is read while the cursor is not on a row."""

    pass


class TypeCoercionError(RqliteError):
    """Raised when a row value cannot be converted to the requested type."""

    pass


__all__ = [
    "AllPeersFailedError",
    "ConfigurationError",
    "ConnectionClosedError",
    "CursorStateError",
    "DiscoveryError",
    "FailureKind",
    "NoPeersError",
    "NotOpenError",
    "PeerFailure",
    "ResponseError",
    "RqliteError",
    "StatementError",
    "TypeCoercionError",
]
