"""Import of Spotify extended streaming-history exports.

Hey future me - the flow per request is:
1. Validate ALL files first (count, extension, size). Nothing touches disk or DB if
   any file fails validation, the caller gets a 400.
2. Per file: write it to the upload dir as `<epoch-millis>-<name>`, parse it, then
   insert the archive row plus one track_play per array element in ONE transaction.
3. The first file that fails (bad JSON, not an array, DB error) aborts the request
   with ImportFailedError (500). Its own rows are rolled back, files imported before
   it in the same request stay committed.

There is NO dedup on ingest. Uploading the same export twice doubles the plays,
/clear-data is where duplicates get cleaned.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from listenstats.config import Settings
from listenstats.domain.exceptions import ImportFailedError, ValidationError
from listenstats.infrastructure.observability import log_operation
from listenstats.infrastructure.persistence import (
    ArchiveRepository,
    Database,
    TrackPlayRepository,
)

logger = logging.getLogger(__name__)

ALLOWED_EXTENSION = ".json"

# Export fields copied as-is (None when missing)
_TEXT_FIELDS = ("platform", "conn_country", "spotify_track_uri", "reason_start", "reason_end")
_FLAG_FIELDS = ("shuffle", "skipped", "offline", "incognito_mode")


@dataclass
class UploadedFile:
    """A file received in a multipart upload, fully read into memory."""

    filename: str
    content: bytes


@dataclass
class ImportedFile:
    """Result for one imported file."""

    name: str
    entries: int


def _as_int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def map_entry(entry: Any) -> dict[str, Any]:
    """Map one export element to track_plays column values.

    Anything that is not a JSON object becomes an all-null play, the same way a
    record with every field missing would.
    """
    if not isinstance(entry, dict):
        entry = {}

    track = entry.get("master_metadata_track_name")
    artist = entry.get("master_metadata_album_artist_name")
    album = entry.get("master_metadata_album_album_name")

    row: dict[str, Any] = {
        "played_at": entry.get("ts"),
        "duration_ms": _as_int(entry.get("ms_played")),
        "track_name": track,
        "artist_name": artist,
        "album_name": album,
        "master_metadata_track_name": track,
        "master_metadata_album_artist_name": artist,
        "master_metadata_album_album_name": album,
    }
    for field in _TEXT_FIELDS:
        row[field] = entry.get(field)
    for field in _FLAG_FIELDS:
        row[field] = bool(entry.get(field) or False)
    return row


def parse_history(content: bytes) -> list[Any]:
    """Parse an export file. The top level must be a JSON array.

    Raises:
        ValueError: content is not valid JSON or not an array
    """
    data = json.loads(content)
    if not isinstance(data, list):
        raise ValueError("File content must be a JSON array")
    return data


class ImportService:
    """Validates, stores and imports uploaded history files."""

    def __init__(self, db: Database, settings: Settings) -> None:
        self._db = db
        self._storage = settings.storage

    def validate(self, files: list[UploadedFile]) -> None:
        """Reject the whole upload if any file breaks the limits.

        Raises:
            ValidationError: no files, too many, wrong extension or too large
        """
        if not files:
            raise ValidationError("No files uploaded")
        if len(files) > self._storage.max_upload_files:
            raise ValidationError("Too many files")
        for uploaded in files:
            if not uploaded.filename.lower().endswith(ALLOWED_EXTENSION):
                raise ValidationError("Only .json files are allowed")
            if len(uploaded.content) > self._storage.max_upload_size_bytes:
                raise ValidationError("File too large")

    async def import_files(
        self, user_id: int, files: list[UploadedFile]
    ) -> list[ImportedFile]:
        """Validate and import every file in order.

        Raises:
            ValidationError: see validate()
            ImportFailedError: a file could not be parsed or written
        """
        self.validate(files)

        imported: list[ImportedFile] = []
        for uploaded in files:
            imported.append(await self._import_one(user_id, uploaded))
        return imported

    def _store(self, filename: str, content: bytes) -> Path:
        """Write the upload under a name no other upload has, return its path."""
        # Only the basename survives, clients can send "../../x.json" as filename
        safe_name = Path(filename).name
        self._storage.upload_path.mkdir(parents=True, exist_ok=True)
        millis = int(time.time() * 1000)
        while True:
            path = self._storage.upload_path / f"{millis}-{safe_name}"
            try:
                # "x" fails if the name is taken (same file name, same millisecond)
                with path.open("xb") as fh:
                    fh.write(content)
                return path
            except FileExistsError:
                millis += 1

    async def _import_one(self, user_id: int, uploaded: UploadedFile) -> ImportedFile:
        path = await asyncio.to_thread(self._store, uploaded.filename, uploaded.content)

        try:
            async with log_operation(
                logger, "import_file", user_id=user_id, stored_name=path.name
            ):
                entries = parse_history(uploaded.content)
                plays = [map_entry(entry) for entry in entries]

                async with self._db.session_scope() as session:
                    await ArchiveRepository(session).add(
                        user_id=user_id,
                        file_path=str(path),
                        original_filename=uploaded.filename,
                        entry_count=len(plays),
                    )
                    await TrackPlayRepository(session).add_many(user_id, plays)
        except Exception as e:
            # No archive row references the file anymore
            path.unlink(missing_ok=True)
            raise ImportFailedError("Failed to process files", details=str(e)) from e

        return ImportedFile(name=path.name, entries=len(plays))
