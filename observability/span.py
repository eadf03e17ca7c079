"""
Span Identity

Correlates one request across its lifecycle and, optionally, with the
caller that issued it.

DESIGN RULES:
- Span ids are random 63-bit integers (never negative)
- A malformed propagation header is not an error, it yields 0
- Header snapshots are flat str -> str maps
"""

import random
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Tuple

# Inbound header carrying the caller's span id (base-10)
PARENT_SPAN_HEADER = "X-Dpparentspanid"

# Key under the ASGI scope state where the current span id is exposed
SPAN_STATE_KEY = "span_id"

_SPAN_ID_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1


def new_span_id() -> int:
    """Draw a fresh 63-bit span id."""
    return random.getrandbits(63)


def canonical_header_key(key: str) -> str:
    """
    Canonicalize a header name: first letter and every letter after a
    hyphen upper-cased, the rest lower-cased ("x-dpparentspanid" ->
    "X-Dpparentspanid").
    """
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def parse_span_id(value: str) -> int:
    """
    Strict base-10 int64 parse; anything unparsable or out of range yields 0.
    """
    if not isinstance(value, str) or not _SPAN_ID_PATTERN.fullmatch(value):
        return 0
    span_id = int(value, 10)
    if span_id < _INT64_MIN or span_id > _INT64_MAX:
        return 0
    return span_id


@dataclass(frozen=True)
class SpanContext:
    """
    Identity of one traced request.

    Created at request entry, discarded once its outcome is recorded.
    """

    span_id: int
    parent_span_id: int = 0
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_raw_headers(cls, raw_headers: Iterable[Tuple[bytes, bytes]]) -> "SpanContext":
        """
        Build a context from ASGI raw headers.

        Repeated headers are joined with commas; the parent span id is
        taken from the first value of the propagation header.
        """
        grouped: Dict[str, list] = {}
        for raw_key, raw_value in raw_headers:
            key = canonical_header_key(raw_key.decode("latin-1"))
            grouped.setdefault(key, []).append(raw_value.decode("latin-1"))

        parent_span_id = 0
        if PARENT_SPAN_HEADER in grouped:
            parent_span_id = parse_span_id(grouped[PARENT_SPAN_HEADER][0])

        return cls(
            span_id=new_span_id(),
            parent_span_id=parent_span_id,
            headers={key: ",".join(values) for key, values in grouped.items()},
        )


def get_span_id(request) -> int:
    """Return the span id of the request being handled (0 if untraced)."""
    return getattr(request.state, SPAN_STATE_KEY, 0)


def get_span_id_string(request) -> str:
    """Convenience wrapper returning the span id in base-10."""
    return str(get_span_id(request))
