"""API schemas for listening statistics."""

from typing import Any

from pydantic import BaseModel, Field


class TotalTimeResponse(BaseModel):
    total_time_ms: int


class DailyTimeResponse(BaseModel):
    date: str = Field(..., description="YYYY-MM-DD")
    total_time_ms: int


# Rows are passed through as plain dicts, each category has its own column set
class StatsResponse(BaseModel):
    """All dashboard categories. A category whose query failed is an empty list."""

    topArtists: list[dict[str, Any]] = Field(default_factory=list)  # noqa: N815
    topTracks: list[dict[str, Any]] = Field(default_factory=list)  # noqa: N815
    topAlbums: list[dict[str, Any]] = Field(default_factory=list)  # noqa: N815
    listeningPatterns: list[dict[str, Any]] = Field(default_factory=list)  # noqa: N815
    platformStats: list[dict[str, Any]] = Field(default_factory=list)  # noqa: N815
    countryStats: list[dict[str, Any]] = Field(default_factory=list)  # noqa: N815


class RangeStatsResponse(BaseModel):
    start_date: str
    end_date: str
    top_artists: list[dict[str, Any]]


class ClearDataResponse(BaseModel):
    message: str
    deleted_plays: int
    deleted_archives: int
    duplicates_removed: int
