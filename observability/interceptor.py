"""
Request Interceptor

ASGI middleware that times every HTTP request, records the slow and
failing ones, and is the recovery boundary for exceptions raised by the
wrapped app.

FLOW GUARANTEES (NON-NEGOTIABLE):
1. Exactly one outcome decision per request (completion OR failure)
2. Outcomes are recorded after the app finishes and before we return
3. An exception from the wrapped app never propagates past this layer
4. A failing request gets the fallback response instead of a crash

Usage:
    app.add_middleware(RequestInterceptor, context=InstrumentationContext())
"""

import logging
import time
from typing import TYPE_CHECKING, Callable, Optional

from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from observability.outcome import RequestOutcome
from observability.span import SPAN_STATE_KEY, SpanContext
from observability.tracer import ResponseTracer

if TYPE_CHECKING:
    from observability.context import InstrumentationContext


logger = logging.getLogger(__name__)

PanicResponseFactory = Callable[[Scope, str], Response]


def default_panic_response(scope: Scope, error_message: str) -> Response:
    """500 Internal Server Error carrying the error message."""
    return PlainTextResponse(error_message, status_code=500)


class RequestInterceptor:
    """
    Instruments every HTTP request passing through the wrapped app.

    Non-HTTP scopes (lifespan, websocket) are passed through untouched.
    """

    def __init__(
        self,
        app: ASGIApp,
        context: "InstrumentationContext",
        panic_response: Optional[PanicResponseFactory] = None,
    ):
        """
        Args:
            app: The wrapped ASGI application
            context: Owner of the registries and the panic reporter
            panic_response: Builds the fallback response for failed requests
        """
        self.app = app
        self._context = context
        self._panic_response = panic_response or default_panic_response

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started_at, tracer = self.before_request(scope, send)

        try:
            await self.app(scope, receive, tracer.send)
        except Exception as exc:
            try:
                self._context.panic_reporter.report(exc, tracer.span_id)
            except Exception as e:
                logger.warning(f"[INTERCEPTOR] Failed to report failure for {scope.get('path')}: {e}")
            self.after_request(started_at, tracer, scope, 500, is_problem=True)
            await self._write_panic_response(scope, receive, send, tracer, str(exc))
            return

        self.after_request(started_at, tracer, scope, tracer.status, is_problem=False)

    def before_request(self, scope: Scope, send: Send):
        """
        Start the clock, build the span and wrap the response writer.

        The span id is exposed to the app as request.state.span_id.
        """
        started_at = time.monotonic()
        span = SpanContext.from_raw_headers(scope.get("headers", []))
        scope.setdefault("state", {})[SPAN_STATE_KEY] = span.span_id
        return started_at, ResponseTracer(send, span)

    def after_request(
        self,
        started_at: float,
        tracer: ResponseTracer,
        scope: Scope,
        status_code: int,
        is_problem: bool,
    ) -> None:
        """Count the status and record the outcome if it is worth reporting."""
        elapsed_ms = int((time.monotonic() - started_at) * 1000)

        self._context.status_counts.inc(status_code)

        # Only slow requests and problems are kept
        if elapsed_ms > self._context.latency_threshold_ms or is_problem:
            self._context.latency.add(
                RequestOutcome(
                    path=scope.get("path", ""),
                    method=scope.get("method", ""),
                    status_code=status_code,
                    elapsed_ms=elapsed_ms,
                    span_id=tracer.span_id,
                    parent_span_id=tracer.parent_span_id,
                    is_problem=is_problem,
                    headers=tracer.span.headers,
                )
            )

    async def _write_panic_response(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        tracer: ResponseTracer,
        error_message: str,
    ) -> None:
        if tracer.started:
            logger.warning(
                f"[INTERCEPTOR] Response already started for {scope.get('path')}, "
                f"fallback response not written"
            )
            return
        try:
            response = self._panic_response(scope, error_message)
            await response(scope, receive, send)
        except Exception as e:
            logger.warning(f"[INTERCEPTOR] Failed to write fallback response: {e}")
