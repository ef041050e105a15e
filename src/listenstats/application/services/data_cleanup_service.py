"""Data cleanup service for the destructive "clear all my data" operation.

Hey future me - this one DELETES user data, order matters:
1. Remember which files the user's archives point to (before the rows are gone).
2. In ONE transaction: remove exact duplicate plays, then all plays, then all archives.
   Any DB error rolls the whole thing back, nothing is half-deleted.
3. Only after the commit, unlink the stored files. That part is best-effort: a file
   that is already gone or locked is logged and skipped, the DB is the source of truth.
Other users' rows and files are never touched, every statement is scoped by user_id.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from listenstats.infrastructure.observability import log_operation
from listenstats.infrastructure.persistence import (
    ArchiveRepository,
    Database,
    TrackPlayRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class ClearDataResult:
    """Row counts from a clear-data run."""

    deleted_plays: int
    deleted_archives: int
    duplicates_removed: int
    files_removed: int = 0


class DataCleanupService:
    """Service for deleting everything a user has imported or recorded."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def clear_user_data(self, user_id: int) -> ClearDataResult:
        """Delete all plays and archives of a user, then their stored files."""
        async with log_operation(logger, "clear_data", user_id=user_id):
            async with self._db.session_scope() as session:
                archives = ArchiveRepository(session)
                plays = TrackPlayRepository(session)

                file_paths = await archives.list_file_paths(user_id)
                duplicates_removed = await plays.delete_duplicates(user_id)
                deleted_plays = await plays.delete_for_user(user_id)
                deleted_archives = await archives.delete_for_user(user_id)

            files_removed = await self._remove_files(user_id, file_paths)

        return ClearDataResult(
            deleted_plays=deleted_plays,
            deleted_archives=deleted_archives,
            duplicates_removed=duplicates_removed,
            files_removed=files_removed,
        )

    async def _remove_files(self, user_id: int, file_paths: list[str]) -> int:
        removed = 0
        for file_path in file_paths:
            try:
                await asyncio.to_thread(Path(file_path).unlink)
                removed += 1
            except FileNotFoundError:
                logger.debug(
                    "clear_data.file_missing",
                    extra={"user_id": user_id, "file_path": file_path},
                )
            except OSError as e:
                logger.warning(
                    "clear_data.file_delete_failed",
                    extra={"user_id": user_id, "file_path": file_path, "error": str(e)},
                )
        return removed
