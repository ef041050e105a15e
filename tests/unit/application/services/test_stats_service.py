"""Tests for StatsService: concurrent dashboard queries and date parsing."""

from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from listenstats.application.services.stats_service import (
    StatsService,
    parse_calendar_date,
    parse_date_range,
)
from listenstats.domain.exceptions import ValidationError
from listenstats.infrastructure.persistence import Database, TrackPlayRepository

DASHBOARD_KEYS = {
    "topArtists",
    "topTracks",
    "topAlbums",
    "listeningPatterns",
    "platformStats",
    "countryStats",
}


async def seed(db: Database, user_id: int) -> None:
    async with db.session_scope() as session:
        await TrackPlayRepository(session).add_many(
            user_id,
            [
                {
                    "track_name": "Song",
                    "artist_name": "Artist",
                    "album_name": "Album",
                    "played_at": "2023-01-05T21:14:03Z",
                    "duration_ms": 1000,
                    "platform": "android",
                    "conn_country": "DE",
                }
            ],
        )


class TestDashboard:
    @pytest.mark.asyncio
    async def test_empty_user_gets_six_empty_lists(self, db: Database, user_id: int) -> None:
        stats = await StatsService(db).get_dashboard(user_id)

        assert set(stats) == DASHBOARD_KEYS
        assert all(value == [] for value in stats.values())

    @pytest.mark.asyncio
    async def test_all_categories_filled(self, db: Database, user_id: int) -> None:
        await seed(db, user_id)

        stats = await StatsService(db).get_dashboard(user_id)

        assert stats["topArtists"][0]["artist_name"] == "Artist"
        assert stats["topTracks"][0]["track_name"] == "Song"
        assert stats["topAlbums"][0]["album_name"] == "Album"
        assert stats["listeningPatterns"][0]["hour"] == "21"
        assert stats["platformStats"][0]["platform"] == "android"
        assert stats["countryStats"][0]["conn_country"] == "DE"

    @pytest.mark.asyncio
    async def test_failing_query_only_empties_its_key(
        self, db: Database, user_id: int
    ) -> None:
        await seed(db, user_id)

        async def boom(self, *args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        with patch.object(TrackPlayRepository, "top_tracks", boom):
            stats = await StatsService(db).get_dashboard(user_id)

        assert stats["topTracks"] == []
        assert len(stats["topArtists"]) == 1
        assert len(stats["countryStats"]) == 1


class TestTotals:
    @pytest.mark.asyncio
    async def test_total_and_daily(self, db: Database, user_id: int) -> None:
        await seed(db, user_id)
        service = StatsService(db)

        assert await service.get_total_time(user_id) == 1000
        assert await service.get_daily_time(user_id, date(2023, 1, 5)) == 1000
        assert await service.get_daily_time(user_id, date(2023, 1, 6)) == 0


class TestDateParsing:
    def test_calendar_date_pads_parts(self) -> None:
        assert parse_calendar_date("2023", "1", "5").isoformat() == "2023-01-05"

    @pytest.mark.parametrize(
        "parts", [(None, "1", "5"), ("2023", None, "5"), ("2023", "1", ""), (None, None, None)]
    )
    def test_missing_part(self, parts: tuple) -> None:
        with pytest.raises(ValidationError, match="Missing date parameters"):
            parse_calendar_date(*parts)

    def test_impossible_date(self) -> None:
        with pytest.raises(ValidationError):
            parse_calendar_date("2023", "2", "30")

    def test_range(self) -> None:
        assert parse_date_range("2023-01-01", "2023-01-31") == (
            date(2023, 1, 1),
            date(2023, 1, 31),
        )

    def test_range_start_after_end(self) -> None:
        with pytest.raises(ValidationError):
            parse_date_range("2023-02-01", "2023-01-31")

    def test_range_bad_format(self) -> None:
        with pytest.raises(ValidationError):
            parse_date_range("01/02/2023", "2023-01-31")
