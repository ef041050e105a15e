"""Application lifecycle management for startup and shutdown tasks.

This module handles the FastAPI lifespan context manager: logging, directories,
database, the shared Spotify client and the now-playing poller.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from listenstats.application.workers import NowPlayingWorker
from listenstats.config import Settings, get_settings
from listenstats.domain.exceptions import ConfigurationError
from listenstats.infrastructure.integrations import SpotifyClient
from listenstats.infrastructure.observability import configure_logging
from listenstats.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


# Hey future me, this validates the SQLite directory BEFORE we create the engine. SQLite needs
# to create -journal/-wal files next to the .db file, so the directory must be writable, not
# just present. Failing here gives a clear message instead of "unable to open database file".
def _validate_sqlite_path(settings: Settings) -> None:
    """Check that the SQLite database directory exists and is writable."""
    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return

    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "Update DATABASE__URL or adjust directory permissions."
        ) from exc


def _app_settings(app: FastAPI) -> Settings:
    """Settings passed to create_app(), else the cached environment settings."""
    settings = getattr(app.state, "settings", None)
    return settings if isinstance(settings, Settings) else get_settings()


# Listen future me, everything before `yield` runs at STARTUP, everything after at SHUTDOWN.
# The try/finally makes sure the poller is stopped and the engine disposed even if startup
# fails halfway. Resources live on app.state so dependencies can reach them.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown tasks including:
    - Logging configuration
    - Directory creation
    - Database initialization (tables are created if missing)
    - Now-playing poller startup (only with Spotify credentials)
    - Resource cleanup
    """
    settings = _app_settings(app)

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    db: Database | None = None
    spotify_client: SpotifyClient | None = None
    worker: NowPlayingWorker | None = None
    try:
        settings.ensure_directories()
        _validate_sqlite_path(settings)

        db = Database(settings)
        await db.create_tables()
        app.state.db = db
        logger.info("Database initialized: %s", settings.database.url)

        spotify_client = SpotifyClient(settings.spotify)
        app.state.spotify_client = spotify_client

        if settings.poller.enabled and settings.spotify.is_configured:
            worker = NowPlayingWorker(db, settings, spotify_client)
            await worker.start()
            app.state.now_playing_worker = worker
        else:
            logger.info(
                "now_playing.disabled",
                extra={
                    "poller_enabled": settings.poller.enabled,
                    "spotify_configured": settings.spotify.is_configured,
                },
            )

        yield

    finally:
        logger.info("Shutting down application")

        if worker is not None:
            try:
                await asyncio.wait_for(
                    worker.stop(), timeout=settings.observability.shutdown_timeout
                )
            except TimeoutError:
                logger.warning("now_playing.stop.timeout")

        if spotify_client is not None:
            await spotify_client.close()

        if db is not None:
            await db.close()
            logger.info("Database connection closed")
