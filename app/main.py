from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.core.config import settings
from app.core.logging import configure_logging
from app.dependencies import get_instrumentation_context
from app.api.requests import router as api_router
from observability.interceptor import RequestInterceptor

context = get_instrumentation_context()

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.stats_enabled:
        context.stats_poller.start()
    yield
    context.stats_poller.stop(timeout=settings.request_timeout_seconds)

app = FastAPI(
    title=settings.service_name,
    lifespan=lifespan
)

# Every request below this point is timed and guarded
app.add_middleware(RequestInterceptor, context=context)

app.include_router(api_router, prefix="/v1")

@app.get("/health")
async def health():
    return {"status": "ok", "agent": context.agent.name}
