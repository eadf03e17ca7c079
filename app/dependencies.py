"""
FastAPI Dependencies

All object creation happens here, not per request.

RULE: the middleware and the routes share exactly one InstrumentationContext.
"""

from functools import lru_cache

from app.core.config import settings
from observability.context import InstrumentationContext


@lru_cache(maxsize=1)
def get_instrumentation_context() -> InstrumentationContext:
    """
    Create and cache the InstrumentationContext singleton.

    All components are wired inside the context:
    - LatencyRegistry / StatusCounter: filled by the RequestInterceptor
    - CollectorClient: shared send routine
    - PanicReporter: ships failures
    - RemoteCommandDispatcher + CommandRegistry: run remote captures once
    - StatsPoller: periodic upload, picks up pending commands

    Returns:
        InstrumentationContext: The application's instrumentation state.
    """
    return InstrumentationContext(settings=settings)
