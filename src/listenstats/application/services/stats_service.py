"""Stats Service - listening statistics for one user.

Hey future me - /stats runs six independent aggregate queries. They go out
concurrently via asyncio.gather(), EACH with its own session (an AsyncSession must
never be shared between concurrent tasks). A query that blows up is logged and its
key becomes [] so one bad aggregate never takes the whole dashboard down.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

from listenstats.domain.exceptions import ValidationError
from listenstats.infrastructure.persistence import (
    ArchiveModel,
    ArchiveRepository,
    Database,
    TrackPlayRepository,
)

logger = logging.getLogger(__name__)

StatsQuery = Callable[[TrackPlayRepository], Awaitable[list[dict[str, Any]]]]


def parse_calendar_date(
    year: str | int | None, month: str | int | None, day: str | int | None
) -> date:
    """Build a date from query-string parts ("2023", "1", "5" → 2023-01-05).

    Raises:
        ValidationError: a part is missing or the date does not exist
    """
    if year in (None, "") or month in (None, "") or day in (None, ""):
        raise ValidationError("Missing date parameters")
    try:
        return date(int(year), int(month), int(day))  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ValidationError("Invalid date parameters") from e


def parse_date_range(start: str | None, end: str | None) -> tuple[date, date]:
    """Parse an inclusive ISO date range.

    Raises:
        ValidationError: missing or malformed dates, or start after end
    """
    if not start or not end:
        raise ValidationError("Missing date parameters")
    try:
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
    except ValueError as e:
        raise ValidationError("Invalid date format, expected YYYY-MM-DD") from e
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")
    return start_date, end_date


class StatsService:
    """Aggregated statistics, always scoped to one user."""

    def __init__(self, db: Database) -> None:
        self._db = db

    # =========================================================================
    # TOTALS
    # =========================================================================

    async def get_total_time(self, user_id: int) -> int:
        """Sum of duration_ms over all plays of the user (0 without plays)."""
        async with self._db.session_scope() as session:
            return await TrackPlayRepository(session).total_duration_ms(user_id)

    async def get_daily_time(self, user_id: int, day: date) -> int:
        """Sum of duration_ms over the plays on one calendar date."""
        async with self._db.session_scope() as session:
            return await TrackPlayRepository(session).total_duration_ms(
                user_id, on_date=day
            )

    async def list_archives(self, user_id: int) -> list[ArchiveModel]:
        """Upload records, newest first."""
        async with self._db.session_scope() as session:
            return await ArchiveRepository(session).list_for_user(user_id)

    # =========================================================================
    # DASHBOARD
    # =========================================================================

    async def _run_query(
        self, name: str, user_id: int, query: StatsQuery
    ) -> list[dict[str, Any]]:
        try:
            async with self._db.session_scope() as session:
                return await query(TrackPlayRepository(session))
        except Exception as e:
            logger.error(
                "stats.query.failed",
                extra={"query": name, "user_id": user_id, "error_type": type(e).__name__},
                exc_info=True,
            )
            return []

    async def get_dashboard(self, user_id: int) -> dict[str, list[dict[str, Any]]]:
        """All six stats categories, keyed the way the frontend reads them."""
        queries: dict[str, StatsQuery] = {
            "topArtists": lambda repo: repo.top_artists(user_id),
            "topTracks": lambda repo: repo.top_tracks(user_id),
            "topAlbums": lambda repo: repo.top_albums(user_id),
            "listeningPatterns": lambda repo: repo.listening_patterns(user_id),
            "platformStats": lambda repo: repo.platform_stats(user_id),
            "countryStats": lambda repo: repo.country_stats(user_id),
        }
        results = await asyncio.gather(
            *(self._run_query(name, user_id, query) for name, query in queries.items())
        )
        return dict(zip(queries.keys(), results, strict=True))

    async def get_top_artists_in_range(
        self, user_id: int, start: date, end: date
    ) -> list[dict[str, Any]]:
        """Top artists ranking restricted to an inclusive date range."""
        async with self._db.session_scope() as session:
            return await TrackPlayRepository(session).top_artists(
                user_id, start=start, end=end
            )
