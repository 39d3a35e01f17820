"""
Result types for rqlite responses.

``QueryResult`` is a forward-only cursor. A result object must not be advanced
from more than one caller at a time.

Usage:
    result = await conn.query_one("SELECT id, name, ts FROM foo")
    while result.next():
        id_, name, ts = result.scan(int, str, datetime)
        row = result.as_map()
"""

from __future__ import annotations

import functools
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .exceptions import CursorStateError, TypeCoercionError

# Declared column types whose values are reconstructed as datetimes by as_map().
TIME_TYPES = frozenset({"date", "datetime", "timestamp", "int_datetime"})

_TIME_LAYOUTS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d")


@dataclass
class WriteResult:
    """
    Outcome of one write statement.

    Attributes:
        index: Position of the statement in its batch
        rows_affected: Rows changed by the statement
        last_insert_id: Rowid of the last insert, if any
        time: Execution time in seconds as reported by the store
        error: Error reported for this statement only
    """

    index: int = 0
    rows_affected: int = 0
    last_insert_id: int | None = None
    time: float = 0.0
    error: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> "WriteResult":
        return cls(
            index=index,
            rows_affected=int(data.get("rows_affected") or 0),
            last_insert_id=data.get("last_insert_id"),
            time=float(data.get("time") or 0.0),
            error=data.get("error") or None,
        )

    @property
    def is_ok(self) -> bool:
        return self.error is None


@dataclass
class QueuedWriteResult:
    """Acknowledgement of a queued write. Rows are applied later by the store."""

    sequence_number: int = 0


@dataclass
class QueryResult:
    """
    Outcome of one query statement, read through a forward-only cursor.

    The cursor starts before the first row; call ``next()`` to move onto a row.
    """

    columns: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    values: list[list[Any]] = field(default_factory=list)
    index: int = 0
    time: float = 0.0
    error: str | None = None
    _row: int = field(default=-1, init=False, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> "QueryResult":
        return cls(
            columns=list(data.get("columns") or []),
            types=[str(t).lower() for t in data.get("types") or []],
            values=[list(row) for row in data.get("values") or []],
            index=index,
            time=float(data.get("time") or 0.0),
            error=data.get("error") or None,
        )

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def num_rows(self) -> int:
        return len(self.values)

    @property
    def row_number(self) -> int:
        """Zero-based cursor position; -1 before the first ``next()``."""
        return self._row

    def next(self) -> bool:
        """Advance to the next row. Returns False once rows are exhausted."""
        if self._row < len(self.values):
            self._row += 1
        return self._row < len(self.values)

    def _current(self) -> list[Any]:
        if self._row < 0:
            raise CursorStateError("cursor is before the first row; call next() first")
        if self._row >= len(self.values):
            raise CursorStateError("cursor is past the last row")
        return self.values[self._row]

    def slice(self) -> list[Any]:
        """Raw values of the current row."""
        return list(self._current())

    def value(self, column: str) -> Any:
        """Value of one named column in the current row."""
        row = self._current()
        try:
            position = self.columns.index(column)
        except ValueError:
            raise KeyError(column) from None
        return row[position]

    def as_map(self) -> dict[str, Any]:
        """
        Map column names to values for the current row.

        Values in date/time typed columns are converted to ``datetime``.
        The cursor does not move.
        """
        row = self._current()
        mapped: dict[str, Any] = {}
        for position, column in enumerate(self.columns):
            value = row[position] if position < len(row) else None
            declared = self.types[position] if position < len(self.types) else ""
            if value is not None and declared in TIME_TYPES:
                value = to_datetime(value)
            mapped[column] = value
        return mapped

    def scan(self, *targets: type | None) -> tuple[Any, ...]:
        """
        Convert the current row into values of the given types, positionally.

        ``None`` or ``object`` as a target passes the value through unchanged.

        Raises:
            CursorStateError: If the cursor is not on a row
            TypeCoercionError: On a target count mismatch or failed conversion
        """
        row = self._current()
        if len(targets) != len(self.columns):
            raise TypeCoercionError(
                f"wrong number of scan targets: got {len(targets)}, expected {len(self.columns)}"
            )
        return tuple(coerce(value, target) for value, target in zip(row, targets))

    def __iter__(self) -> Iterator[dict[str, Any]]:
        """Advance through the remaining rows, yielding each as a map."""
        while self.next():
            yield self.as_map()

    def __len__(self) -> int:
        return len(self.values)


def to_datetime(value: Any) -> datetime:
    """
    Reconstruct a timestamp from an epoch number or a formatted string.

    Epoch values are seconds. Results are always timezone-aware; strings
    without an offset are read as UTC.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        raise TypeCoercionError(f"cannot convert {value!r} to datetime")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise TypeCoercionError(f"epoch value {value!r} out of range") from e
    if isinstance(value, str):
        text = value.strip()
        for layout in _TIME_LAYOUTS:
            try:
                return datetime.strptime(text, layout).replace(tzinfo=timezone.utc)
            except ValueError:
                continue
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as e:
            raise TypeCoercionError(f"cannot parse {value!r} as a timestamp") from e
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)
    raise TypeCoercionError(f"invalid time type: {type(value).__name__} value: {value!r}")


@functools.lru_cache(maxsize=64)
def _adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


def coerce(value: Any, target: type | None) -> Any:
    """Convert one JSON value to ``target``; ``None`` values stay ``None``."""
    if target is None or target is object or value is None:
        return value
    if target is datetime:
        return to_datetime(value)
    if target is int and isinstance(value, float):
        if not value.is_integer():
            raise TypeCoercionError(f"cannot convert {value!r} to int without losing its fraction")
        return int(value)
    if target is bytes and isinstance(value, str):
        return value.encode("utf-8")
    try:
        return _adapter(target).validate_python(value)
    except ValidationError as e:
        raise TypeCoercionError(
            f"cannot convert {type(value).__name__} {value!r} to {getattr(target, '__name__', target)}"
        ) from e


__all__ = [
    "QueryResult",
    "QueuedWriteResult",
    "TIME_TYPES",
    "WriteResult",
    "coerce",
    "to_datetime",
]
