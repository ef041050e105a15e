"""Shared logger helpers for consistent operation and worker logs.

USAGE:
    from listenstats.infrastructure.observability import log_operation, log_worker_health

    async with log_operation(logger, "import_file", user_id=7, stored_name="a.json"):
        await import_file()

    log_worker_health(logger, "now_playing", cycles_completed=10, errors_total=0, uptime_seconds=300)
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any


# Yo, wrap any operation you want timed in this. Start/end are logged with the same context
# fields, failures get exc_info and are re-raised so the caller still decides what to do.
@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    **context: Any,
) -> AsyncIterator[None]:
    """Log `{operation}.started`, `.completed` or `.failed` with duration_ms.

    Args:
        logger: Module logger
        operation: Operation name (e.g., "import_file", "clear_data")
        **context: Additional fields to include in every log line
    """
    start = time.time()
    logger.info(f"{operation}.started", extra=context)

    try:
        yield
    except Exception as e:
        logger.error(
            f"{operation}.failed",
            extra={
                **context,
                "duration_ms": int((time.time() - start) * 1000),
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise

    logger.info(
        f"{operation}.completed",
        extra={**context, "duration_ms": int((time.time() - start) * 1000)},
    )


def log_worker_health(
    logger: logging.Logger,
    worker_name: str,
    cycles_completed: int,
    errors_total: int,
    uptime_seconds: float,
    extra_stats: dict[str, Any] | None = None,
) -> None:
    """Log worker health status in consistent format.

    Call this every N cycles for monitoring.
    """
    log_data = {
        "worker": worker_name,
        "cycles_completed": cycles_completed,
        "errors_total": errors_total,
        "uptime_seconds": int(uptime_seconds),
    }
    if extra_stats:
        log_data.update(extra_stats)

    logger.info("worker.health", extra=log_data)
