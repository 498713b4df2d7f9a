"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from checkhost.core.config import settings
from checkhost.core.database import close_db
from checkhost.core.logging import setup_logging
from checkhost.core.metrics import get_content_type, get_metrics, set_app_info
from checkhost.core.middleware import (
    MetricsMiddleware,
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
)
from checkhost.modules.agent import agent_router
from checkhost.modules.check import check_router


ENVIRONMENT = "development" if settings.DEBUG else "production"


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_db()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
## Check Host API

Runs network diagnostics from every online worker agent and aggregates the
per-agent results.

### Checks

* **ping** - ICMP echo with per-packet timing
* **dns** - Record lookup (A by default)
* **http** - URL fetch with status code and timing
* **tcp / udp** - Port reachability
* **ip-info** - IP geolocation and ASN

When no agent is online, or every agent fails, the check runs on the local
fallback worker instead.
    """,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    openapi_tags=[
        {
            "name": "health",
            "description": "Health check endpoints",
        },
        {
            "name": "checks",
            "description": "Network checks fanned out to worker agents",
        },
        {
            "name": "agents",
            "description": "Worker agent registry - listing, visibility, health probing",
        },
    ],
    lifespan=lifespan,
)

setup_logging(
    level="INFO" if not settings.DEBUG else "DEBUG",
    json_format=settings.LOG_JSON,
    include_stack_trace=True,
)

set_app_info(version=settings.VERSION, environment=ENVIRONMENT)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(MetricsMiddleware)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        dict: Health status with "healthy" or "unhealthy" value.
    """
    return {"status": "healthy"}


@app.get("/metrics", include_in_schema=False)
async def prometheus_metrics() -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(content=get_metrics(), media_type=get_content_type())


# Include routers
app.include_router(check_router, prefix=settings.API_V1_PREFIX)
app.include_router(agent_router, prefix=settings.API_V1_PREFIX)
