# Observability Package
from observability.span import SpanContext, get_span_id, get_span_id_string
from observability.outcome import RequestOutcome
from observability.registry import LatencyRegistry, StatusCounter
from observability.tracer import ResponseTracer
from observability.interceptor import RequestInterceptor

__all__ = [
    "SpanContext",
    "get_span_id",
    "get_span_id_string",
    "RequestOutcome",
    "LatencyRegistry",
    "StatusCounter",
    "ResponseTracer",
    "RequestInterceptor",
]
