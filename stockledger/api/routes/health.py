"""
Health check endpoints.
"""

import time

from fastapi import APIRouter

from stockledger.application.dto.responses import DatabaseHealthResponse, HealthResponse
from stockledger.config import get_settings

router = APIRouter(prefix="/api/health", tags=["health"])

_start_time = time.time()


def _health(database: DatabaseHealthResponse | None = None) -> HealthResponse:
    healthy = database is None or database.available
    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=get_settings().app_version,
        uptime_seconds=time.time() - _start_time,
        database=database,
    )


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness only; does not touch the database."""
    return _health()


@router.get("/db", response_model=HealthResponse)
async def db_health() -> HealthResponse:
    """
    Ledger database check.

    Unhealthy when the database cannot be read or lacks a table or
    column the ledger writes to, e.g. before migrations have run.
    """
    from stockledger.infrastructure.storage.sqlite import get_pool
    from stockledger.infrastructure.storage.sqlite.migrations.migrator import (
        get_current_version,
        schema_problems,
        table_columns,
    )

    try:
        pool = await get_pool()
        start = time.perf_counter()
        async with pool.acquire() as conn:
            problems = schema_problems(await table_columns(conn))
            version = await get_current_version(conn)
        database = DatabaseHealthResponse(
            available=not problems,
            schema_version=version,
            missing_schema=problems,
            writer_busy=pool.writing,
            latency_ms=(time.perf_counter() - start) * 1000,
        )
    except Exception as e:
        database = DatabaseHealthResponse(available=False, error=str(e))

    return _health(database)
