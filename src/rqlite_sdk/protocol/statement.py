"""
Statement model and wire encoding.

A statement travels as a JSON array: the SQL text followed by its positional
arguments. A batch is a JSON array of such arrays::

    [["INSERT INTO foo(name, age) VALUES(?, ?)", "fiona", 20], ["SELECT 1"]]
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

logger = logging.getLogger(__name__)


class StatementJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for statement arguments.

    Handles Python types that are not natively JSON serializable:
    - bytes → base64 string
    - datetime / date / time → ISO 8601 string
    - Decimal → float
    - UUID → string
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return base64.b64encode(bytes(obj)).decode("ascii")
        if isinstance(obj, (datetime, date, time)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, UUID):
            return str(obj)
        return super().default(obj)


@dataclass(frozen=True, init=False)
class Statement:
    """
    A SQL template with positional ``?`` arguments.

    A placeholder count that differs from the argument count does not fail;
    it sets ``warning`` and leaves the store to report the real error.

    Usage:
        stmt = Statement("INSERT INTO foo (id, name) VALUES (?, ?)", 1, "bob")
        stmt.warning  # ""
    """

    sql: str
    parameters: tuple[Any, ...] = ()
    warning: str = field(default="", compare=False)

    def __init__(self, sql: str, *parameters: Any):
        object.__setattr__(self, "sql", sql)
        object.__setattr__(self, "parameters", tuple(parameters))
        object.__setattr__(self, "warning", _count_warning(sql, self.parameters))
        if self.warning:
            logger.debug("statement %r: %s", sql, self.warning)

    def append(self, sql: str, *parameters: Any) -> "Statement":
        """Return a new statement with SQL and arguments appended."""
        return Statement(self.sql + sql, *self.parameters, *parameters)

    def to_wire(self) -> list[Any]:
        return [self.sql, *self.parameters]

    def __str__(self) -> str:
        # Best effort, for debugging only.
        rendered = self.sql
        for value in self.parameters:
            rendered = rendered.replace("?", _render(value), 1)
        return rendered


def _count_warning(sql: str, parameters: tuple[Any, ...]) -> str:
    expected = sql.count("?")
    if expected == len(parameters):
        return ""
    return f"Unexpected parameters count: {len(parameters)}, expected: {expected}"


def _render(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    return str(value)


def as_statement(item: "Statement | str") -> Statement:
    """Wrap plain SQL text in a parameterless statement."""
    if isinstance(item, Statement):
        return item
    if isinstance(item, str):
        return Statement(item)
    raise TypeError(f"expected Statement or str, got {type(item).__name__}")


def encode_statements(statements: Iterable["Statement | str"]) -> bytes:
    """
    Encode a statement batch for the ``/db/*`` endpoints.

    Args:
        statements: Statements or plain SQL strings

    Returns:
        UTF-8 JSON body
    """
    payload = [as_statement(s).to_wire() for s in statements]
    return json.dumps(payload, cls=StatementJSONEncoder).encode("utf-8")


__all__ = ["Statement", "StatementJSONEncoder", "as_statement", "encode_statements"]
