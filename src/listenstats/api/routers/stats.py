"""Listening statistics endpoints."""

from fastapi import APIRouter, Depends

from listenstats.api.dependencies import get_current_user_id, get_stats_service
from listenstats.api.schemas.stats import (
    DailyTimeResponse,
    RangeStatsResponse,
    StatsResponse,
    TotalTimeResponse,
)
from listenstats.application.services import StatsService
from listenstats.application.services.stats_service import (
    parse_calendar_date,
    parse_date_range,
)

router = APIRouter()


@router.get("/total-time", response_model=TotalTimeResponse)
async def total_time(
    user_id: int = Depends(get_current_user_id),
    stats_service: StatsService = Depends(get_stats_service),
) -> TotalTimeResponse:
    return TotalTimeResponse(total_time_ms=await stats_service.get_total_time(user_id))


# Query params stay plain strings so a missing one gives "Missing date parameters"
# instead of a pydantic error list.
@router.get("/daily-time", response_model=DailyTimeResponse)
async def daily_time(
    year: str | None = None,
    month: str | None = None,
    day: str | None = None,
    user_id: int = Depends(get_current_user_id),
    stats_service: StatsService = Depends(get_stats_service),
) -> DailyTimeResponse:
    """Listening time on one calendar date (month/day may be unpadded)."""
    on_date = parse_calendar_date(year, month, day)
    total = await stats_service.get_daily_time(user_id, on_date)
    return DailyTimeResponse(date=on_date.isoformat(), total_time_ms=total)


@router.get("/stats", response_model=StatsResponse)
async def dashboard_stats(
    user_id: int = Depends(get_current_user_id),
    stats_service: StatsService = Depends(get_stats_service),
) -> StatsResponse:
    """Top lists, hourly patterns and platform/country breakdowns."""
    return StatsResponse(**await stats_service.get_dashboard(user_id))


@router.get("/stats/range", response_model=RangeStatsResponse)
async def range_stats(
    start_date: str | None = None,
    end_date: str | None = None,
    user_id: int = Depends(get_current_user_id),
    stats_service: StatsService = Depends(get_stats_service),
) -> RangeStatsResponse:
    """Top artists between two dates (inclusive)."""
    start, end = parse_date_range(start_date, end_date)
    top_artists = await stats_service.get_top_artists_in_range(user_id, start, end)
    return RangeStatsResponse(
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        top_artists=top_artists,
    )
