"""
Decoding of ``/db/*`` response bodies.

Every data endpoint answers with an envelope whose ``results`` array holds one
entry per submitted statement::

    {"results": [{"columns": ["id"], "types": ["integer"], "values": [[1]]},
                 {"error": "no such table: bar"}],
     "time": 0.0012}

An ``error`` entry belongs to its own slot only; its siblings still decode.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from ..exceptions import ResponseError
from ..results import QueryResult, QueuedWriteResult, WriteResult
from ..types import ApiOperation


class ResultEntry(BaseModel):
    """One ``results`` slot. Query and write fields are all optional."""

    columns: list[str] | None = None
    types: list[str] | None = None
    values: list[list[Any]] | None = None
    last_insert_id: int | None = None
    rows_affected: int | None = None
    time: float | None = None
    error: str | None = None

    def fields(self) -> dict[str, Any]:
        """The fields present in the body, as a plain dict."""
        return self.model_dump(exclude_unset=True)


class ResponseEnvelope(BaseModel):
    """Top-level body of a ``/db/query``, ``/db/execute`` or ``/db/request`` response."""

    results: list[ResultEntry] = []
    time: float | None = None
    sequence_number: int | None = None
    error: str | None = None


def parse_envelope(body: bytes) -> ResponseEnvelope:
    """
    Parse and validate a response envelope.

    Raises:
        ResponseError: If the body is not a valid envelope or reports a
            request-level error
    """
    try:
        envelope = ResponseEnvelope.model_validate_json(body)
    except ValidationError as e:
        snippet = body[:200].decode("utf-8", errors="replace")
        raise ResponseError(f"could not decode response body: {snippet!r}") from e
    if envelope.error:
        raise ResponseError(envelope.error)
    return envelope


def decode_entry(entry: dict[str, Any], operation: ApiOperation, index: int) -> QueryResult | WriteResult:
    """Decode one ``results`` entry according to the endpoint that produced it."""
    if operation is ApiOperation.QUERY:
        return QueryResult.from_dict(entry, index)
    if operation is ApiOperation.EXECUTE:
        return WriteResult.from_dict(entry, index)
    if operation is ApiOperation.REQUEST:
        if "columns" in entry:
            return QueryResult.from_dict(entry, index)
        return WriteResult.from_dict(entry, index)
    raise ValueError(f"{operation.name} responses carry no statement results")


def decode_response(body: bytes, operation: ApiOperation) -> list[QueryResult | WriteResult]:
    """Decode a response body into one result per submitted statement."""
    envelope = parse_envelope(body)
    return [decode_entry(entry.fields(), operation, n) for n, entry in enumerate(envelope.results)]


def decode_queued(body: bytes) -> QueuedWriteResult:
    """Decode the acknowledgement of a queued write."""
    envelope = parse_envelope(body)
    return QueuedWriteResult(sequence_number=envelope.sequence_number or 0)


__all__ = ["ResponseEnvelope", "ResultEntry", "decode_entry", "decode_queued", "decode_response", "parse_envelope"]
