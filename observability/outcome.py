"""
Request Outcome Model

Summary of one request worth reporting (slow or failed).
Pure data container - recording policy lives in the interceptor.

DESIGN RULES:
- Immutable after creation
- No dependencies on the collector
"""

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class RequestOutcome:
    """
    Immutable record of one reported request.

    Captures:
    - Identity (span_id, parent_span_id)
    - Request (path, method, header snapshot)
    - Outcome (status_code, elapsed_ms, is_problem)
    """

    path: str
    method: str
    status_code: int
    elapsed_ms: int
    span_id: int
    parent_span_id: int = 0
    is_problem: bool = False
    headers: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the collector's field names."""
        return {
            "Path": self.path,
            "Method": self.method,
            "StatusCode": self.status_code,
            "Time": self.elapsed_ms,
            "SpanId": self.span_id,
            "ParentSpanId": self.parent_span_id,
            "IsProblem": self.is_problem,
            "Headers": dict(self.headers),
        }
