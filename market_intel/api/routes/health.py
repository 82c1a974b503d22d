from fastapi import APIRouter, Request
from sqlalchemy import text

from market_intel.config import settings
from market_intel.infrastructure.db import database

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Service, scheduler and database health."""
    db_status = "disabled"
    db_error = None
    if settings.DB_PERSISTENCE_ENABLED:
        try:
            if database.engine is None:
                db_status = "not_initialized"
            else:
                async with database.engine.begin() as conn:
                    await conn.execute(text("SELECT 1"))
                db_status = "connected"
        except Exception as exc:
            db_status = "error"
            db_error = str(exc)

    scheduler = getattr(request.app.state, "adaptive_scheduler", None)
    if scheduler is None:
        scheduler_status = "disabled"
    else:
        scheduler_status = "running" if scheduler.state.running else "stopped"

    return {
        "status": "healthy",
        "service": "Market Intelligence",
        "version": "1.0.0",
        "services": {
            "api": "running",
            "scheduler": scheduler_status,
            "database": db_status,
        },
        "database_error": db_error,
    }
