"""
Investment Tracker API — application entry-point.

Builds the FastAPI application: middleware, exception handlers, routers,
health check, and the lifespan hook that creates tables on startup.

Run with::

    uvicorn invtracker.main:app
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy import text
from sqlmodel import SQLModel

from invtracker.api.api import api_router
from invtracker.core.config import settings
from invtracker.core.exceptions import add_exception_handlers
from invtracker.core.logging import setup_logging
from invtracker.core.resilience import STORE_FAILURES, db_circuit_breaker, retry_with_backoff
from invtracker.db.session import AsyncSessionLocal, engine
from invtracker.middleware import RequestIDMiddleware, RequestTimingMiddleware

setup_logging()
logger = logging.getLogger(__name__)


@retry_with_backoff(max_retries=max(settings.DB_CONNECT_RETRIES - 1, 0), base_delay=2.0)
async def create_tables() -> None:
    """Create every SQLModel table that does not exist yet."""
    import invtracker.models  # noqa: F401  (registers table metadata)

    logger.info("Connecting to database and creating tables")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables ready")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: create tables, retrying with backoff.  If the database stays
    unreachable the app still starts, degraded; store-backed routes answer
    503 ``StoreUnavailable`` until it recovers.

    Shutdown: dispose of the connection pool.
    """
    try:
        await create_tables()
    except STORE_FAILURES as exc:
        logger.error(
            "Could not reach the database after %d attempts; starting in DEGRADED mode: %s",
            settings.DB_CONNECT_RETRIES,
            exc,
        )

    yield

    logger.info("Shutting down, disposing connection pool")
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Tracks fixed-term investments (fixed and recurring deposits).",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

# ── Middleware (last added = outermost) ──
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Liveness / readiness probe.

    Runs ``SELECT 1`` against the store and reports the circuit breaker
    state.  Always answers 200; ``status`` is ``degraded`` when the store is
    unreachable.
    """
    db_healthy = True
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except STORE_FAILURES:
        db_healthy = False

    return {
        "status": "ok" if db_healthy else "degraded",
        "version": settings.VERSION,
        "database": db_healthy,
        "circuit_breaker": db_circuit_breaker.get_status(),
    }
