"""
rqlite wire protocol.

Statement encoding for request bodies and decoding of response bodies.
"""

from .response import ResponseEnvelope, decode_queued, decode_response, parse_envelope
from .statement import Statement, StatementJSONEncoder, as_statement, encode_statements

__all__ = [
    "ResponseEnvelope",
    "Statement",
    "StatementJSONEncoder",
    "as_statement",
    "decode_queued",
    "decode_response",
    "encode_statements",
    "parse_envelope",
]
