"""
rqlite SDK Connection Module.

Provides the connection façade, its configuration and the request executor.
"""

from .config import ConnectionConfig
from .executor import RequestExecutor
from .http import RqliteConnection

__all__ = [
    "ConnectionConfig",
    "RequestExecutor",
    "RqliteConnection",
]
