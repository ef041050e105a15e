"""Tests for DataCleanupService (clear-data)."""

from pathlib import Path
from unittest.mock import patch

import pytest
import pytest_asyncio

from listenstats.application.services.data_cleanup_service import DataCleanupService
from listenstats.infrastructure.persistence import (
    ArchiveRepository,
    Database,
    TrackPlayRepository,
    UserRepository,
)

PLAY = {
    "track_name": "Song",
    "artist_name": "Artist",
    "album_name": "Album",
    "played_at": "2023-01-05T21:14:03Z",
    "duration_ms": 1000,
}


@pytest_asyncio.fixture
async def other_user_id(db: Database) -> int:
    async with db.session_scope() as session:
        return (await UserRepository(session).add("other@example.com", "x")).id


async def seed(db: Database, user_id: int, file_path: Path, plays: list[dict]) -> None:
    file_path.write_text("[]")
    async with db.session_scope() as session:
        await ArchiveRepository(session).add(user_id, str(file_path), file_path.name, len(plays))
        await TrackPlayRepository(session).add_many(user_id, plays)


class TestClearUserData:
    @pytest.mark.asyncio
    async def test_clears_rows_and_files(
        self, db: Database, user_id: int, tmp_path: Path
    ) -> None:
        stored = tmp_path / "1-history.json"
        await seed(db, user_id, stored, [PLAY, PLAY, {**PLAY, "duration_ms": 5}])

        result = await DataCleanupService(db).clear_user_data(user_id)

        assert result.duplicates_removed == 1
        assert result.deleted_plays == 2
        assert result.deleted_archives == 1
        assert result.files_removed == 1
        assert not stored.exists()
        async with db.session_scope() as session:
            assert await TrackPlayRepository(session).count_for_user(user_id) == 0

    @pytest.mark.asyncio
    async def test_other_users_untouched(
        self, db: Database, user_id: int, other_user_id: int, tmp_path: Path
    ) -> None:
        mine = tmp_path / "1-mine.json"
        theirs = tmp_path / "2-theirs.json"
        await seed(db, user_id, mine, [PLAY])
        await seed(db, other_user_id, theirs, [PLAY, PLAY])

        await DataCleanupService(db).clear_user_data(user_id)

        assert theirs.exists()
        async with db.session_scope() as session:
            assert await TrackPlayRepository(session).count_for_user(other_user_id) == 2
            assert len(await ArchiveRepository(session).list_for_user(other_user_id)) == 1

    @pytest.mark.asyncio
    async def test_missing_file_is_not_an_error(
        self, db: Database, user_id: int, tmp_path: Path
    ) -> None:
        stored = tmp_path / "1-gone.json"
        await seed(db, user_id, stored, [PLAY])
        stored.unlink()

        result = await DataCleanupService(db).clear_user_data(user_id)

        assert result.deleted_archives == 1
        assert result.files_removed == 0

    @pytest.mark.asyncio
    async def test_db_failure_rolls_back_everything(
        self, db: Database, user_id: int, tmp_path: Path
    ) -> None:
        stored = tmp_path / "1-keep.json"
        await seed(db, user_id, stored, [PLAY, PLAY])

        async def boom(self, user_id):
            raise RuntimeError("disk I/O error")

        with patch.object(ArchiveRepository, "delete_for_user", boom):
            with pytest.raises(RuntimeError):
                await DataCleanupService(db).clear_user_data(user_id)

        assert stored.exists()
        async with db.session_scope() as session:
            assert await TrackPlayRepository(session).count_for_user(user_id) == 2
