"""
Health endpoints.

Lightweight liveness/readiness probes without exposing secrets.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from dailyreflect.core.database import check_connection, get_database_url, get_engine, metadata

logger = logging.getLogger("dailyreflect")

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables. In-memory stores are always ready."""
    if not get_database_url():
        return {"status": "ok", "store": "memory"}

    try:
        if not check_connection():
            return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

        inspector = inspect(get_engine())
        missing = [name for name in metadata.tables if not inspector.has_table(name)]
        if missing:
            detail = f"missing tables: {', '.join(sorted(missing))}"
            logger.warning(f"[readyz] {detail}")
            return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

        return {"status": "ok", "store": "sql"}
    except SQLAlchemyError as e:
        logger.error(f"[readyz] readiness check failed: {e.__class__.__name__}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})
