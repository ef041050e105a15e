"""Health check endpoint for Docker probes."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from listenstats import __version__

router = APIRouter()


# Hey future me - 200 when the DB answers, 503 otherwise. The poller is reported but
# does not affect the status, it is optional (disabled without Spotify credentials).
@router.get("/health")
async def health(request: Request) -> JSONResponse:
    checks: dict[str, Any] = {}
    healthy = True

    db = getattr(request.app.state, "db", None)
    if db is None:
        healthy = False
        checks["database"] = "not_initialized"
    else:
        try:
            async with db.session_scope() as session:
                await session.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as e:
            healthy = False
            checks["database"] = f"error: {type(e).__name__}"

    worker = getattr(request.app.state, "now_playing_worker", None)
    checks["now_playing_worker"] = "running" if worker is not None else "disabled"

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": __version__,
            "checks": checks,
        },
    )
