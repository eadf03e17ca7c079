"""
Recorded Requests Route

Read-only view over the LatencyRegistry. Contains no recording logic.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import Dict, List

from app.dependencies import get_instrumentation_context
from observability.context import InstrumentationContext


router = APIRouter()


class RecordedRequest(BaseModel):
    """One slow or failed request."""
    path: str
    method: str
    status_code: int
    elapsed_ms: int = Field(..., description="Handling time, truncated to whole milliseconds")
    span_id: int
    parent_span_id: int = 0
    is_problem: bool = False
    headers: Dict[str, str] = Field(default_factory=dict)


class RecordedRequestsResponse(BaseModel):
    """API response listing recorded requests."""
    threshold_ms: int = Field(..., description="Latency threshold in effect")
    requests: List[RecordedRequest] = Field(default_factory=list)


@router.get("/requests/slow", response_model=RecordedRequestsResponse)
def list_recorded_requests(
    context: InstrumentationContext = Depends(get_instrumentation_context),
) -> RecordedRequestsResponse:
    """
    List requests recorded since the last stats upload.
    """
    return RecordedRequestsResponse(
        threshold_ms=context.latency_threshold_ms,
        requests=[
            RecordedRequest(
                path=outcome.path,
                method=outcome.method,
                status_code=outcome.status_code,
                elapsed_ms=outcome.elapsed_ms,
                span_id=outcome.span_id,
                parent_span_id=outcome.parent_span_id,
                is_problem=outcome.is_problem,
                headers=outcome.headers,
            )
            for outcome in context.latency.list()
        ],
    )
