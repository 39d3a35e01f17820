"""
Pytest configuration for rqlite SDK tests.

All network traffic goes through ``httpx.MockTransport``: the ``fake_cluster``
fixture maps ``(host:port, path)`` pairs to scripted outcomes so tests can
simulate leaders, dead peers, redirects and slow nodes without a real rqlite
cluster.
"""

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio

Outcome = Callable[[httpx.Request], Any] | type[Exception]

# ---------------------------------------------------------------------------
# Shared sample documents
# ---------------------------------------------------------------------------
NODES_RESPONSE = {
    "1": {
        "api_addr": "http://host1:4001",
        "addr": "host2:4002",
        "reachable": True,
        "leader": False,
        "time": 9.114e-06,
    },
    "2": {
        "api_addr": "http://host3:4003",
        "addr": "host3:4004",
        "reachable": True,
        "leader": True,
        "time": 0.000127793,
    },
    "3": {
        "addr": "host6:4006",
        "reachable": False,
        "leader": False,
        "error": "pool get: dial tcp host6:4006: connect: connection refused",
    },
}


class FakeCluster:
    """Scripted rqlite nodes behind an ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Outcome]] = {}

    @staticmethod
    def reply(
        status: int = 200,
        payload: Any = None,
        *,
        text: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> Callable[[httpx.Request], httpx.Response]:
        """Build an outcome that answers with a fresh response each time."""

        def respond(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status, text=text, headers=headers)
            if payload is None:
                return httpx.Response(status, headers=headers)
            return httpx.Response(status, content=json.dumps(payload).encode(), headers=headers)

        return respond

    def on(self, peer: str, path: str, *outcomes: Outcome) -> None:
        """
        Script the answers of one endpoint.

        Outcomes are used in order; the last one repeats. An exception class
        is raised instead of answering.
        """
        self._routes[(peer, path)] = list(outcomes)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (f"{request.url.host}:{request.url.port}", request.url.path)
        outcomes = self._routes.get(key)
        if not outcomes:
            raise httpx.ConnectError(f"connection refused: {key[0]}", request=request)
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, type) and issubclass(outcome, Exception):
            raise outcome(f"{outcome.__name__} from {key[0]}", request=request)  # type: ignore[call-arg]
        result = outcome(request)
        if hasattr(result, "__await__"):
            result = await result
        return result

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def attempted(self) -> list[str]:
        """``host:port`` of every request, in order."""
        return [f"{r.url.host}:{r.url.port}" for r in self.requests]

    def attempted_paths(self, path: str) -> list[str]:
        return [f"{r.url.host}:{r.url.port}" for r in self.requests if r.url.path == path]


@pytest.fixture
def fake_cluster() -> FakeCluster:
    """A fresh scripted cluster."""
    return FakeCluster()


@pytest_asyncio.fixture
async def mock_client(fake_cluster: FakeCluster) -> AsyncGenerator[httpx.AsyncClient, None]:
    """An ``httpx.AsyncClient`` wired to ``fake_cluster``."""
    client = fake_cluster.client()
    yield client
    await client.aclose()


@pytest.fixture
def nodes_response() -> dict[str, Any]:
    return json.loads(json.dumps(NODES_RESPONSE))
