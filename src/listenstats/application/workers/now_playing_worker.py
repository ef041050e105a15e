# Hey future me - this worker records LIVE plays for every user who connected Spotify.
#
# Every interval_seconds (default 30s) it:
# 1. Loads all users that have a spotify_tokens row
# 2. Polls each of them concurrently (short DB sessions per user, never shared,
#    none held open during Spotify calls)
# 3. Per user: refresh the access token if expired, then GET currently-playing
# 4. Writes a track_play if the URI changed OR debounce_seconds have passed since the
#    last recorded play of that user
#
# The last (uri, recorded_at) per user lives in memory. After a restart it is seeded
# lazily from the user's newest play so a restart does not double-record the song that
# is playing right now.
#
# Error handling:
# - Refresh fails: log and skip that user this cycle. A dead refresh token (invalid_grant)
#   is logged as reconnect_required, the user has to go through /spotify/auth again
# - One user's poll blows up: counted as error, other users are unaffected
# - A whole cycle fails (e.g. DB locked): log and try again next interval, no crash loop
"""Background worker that records what each connected user is playing."""

import asyncio
import contextlib
import logging
import time
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from listenstats.application.services.spotify_auth_service import SpotifyAuthService
from listenstats.domain.exceptions import ExternalServiceError, TokenRefreshException
from listenstats.infrastructure.observability import log_worker_health
from listenstats.infrastructure.persistence import (
    SpotifyTokenRepository,
    TrackPlayRepository,
)

if TYPE_CHECKING:
    from listenstats.config import Settings
    from listenstats.infrastructure.integrations.spotify_client import SpotifyClient
    from listenstats.infrastructure.persistence import Database

logger = logging.getLogger(__name__)

LIVE_PLATFORM = "Spotify"


def format_played_at(moment: datetime) -> str:
    """Same shape as export timestamps ("2023-01-05T21:14:03Z")."""
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def play_from_playback(playback: dict[str, Any], now: datetime) -> dict[str, Any]:
    """Map a currently-playing response to track_plays column values."""
    item = playback.get("item") or {}
    artists = item.get("artists") or []
    track = item.get("name")
    artist = artists[0].get("name") if artists else None
    album = (item.get("album") or {}).get("name")

    return {
        "played_at": format_played_at(now),
        "duration_ms": int(item.get("duration_ms") or 0),
        "track_name": track,
        "artist_name": artist,
        "album_name": album,
        "master_metadata_track_name": track,
        "master_metadata_album_artist_name": artist,
        "master_metadata_album_album_name": album,
        "spotify_track_uri": item.get("uri"),
        "platform": LIVE_PLATFORM,
        "shuffle": bool(playback.get("shuffle_state") or False),
    }


class NowPlayingWorker:
    """Polls Spotify's currently-playing endpoint for all connected users.

    On failure:
    - Logs and continues (no crash loop)
    - A user whose token cannot be refreshed is skipped until the next cycle
    """

    def __init__(
        self,
        db: "Database",
        settings: "Settings",
        spotify_client: "SpotifyClient",
    ) -> None:
        """Initialize now-playing worker.

        Args:
            db: Database instance for creating sessions
            settings: Application settings (poller interval and debounce)
            spotify_client: Shared Spotify HTTP client
        """
        self.db = db
        self.settings = settings
        self.client = spotify_client
        self.auth_service = SpotifyAuthService(spotify_client, settings)
        self.check_interval_seconds = settings.poller.interval_seconds
        self.debounce = timedelta(seconds=settings.poller.debounce_seconds)

        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._last_seen: dict[int, tuple[str, datetime]] = {}

        # Worker lifecycle tracking for health logging
        self._cycles_completed: int = 0
        self._errors_total: int = 0
        self._plays_recorded: int = 0
        self._start_time: float = time.time()

    async def start(self) -> None:
        """Start the poller. Safe to call multiple times."""
        if self._running:
            logger.warning("now_playing.already_running")
            return

        self._running = True
        self._start_time = time.time()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "worker.started",
            extra={
                "worker": "now_playing",
                "check_interval_seconds": self.check_interval_seconds,
            },
        )

    async def stop(self) -> None:
        """Stop the poller and wait for the task to finish. Safe to call multiple times."""
        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info(
            "worker.stopped",
            extra={
                "worker": "now_playing",
                "cycles_completed": self._cycles_completed,
                "errors_total": self._errors_total,
                "uptime_seconds": int(time.time() - self._start_time),
            },
        )

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.poll_once()
                self._cycles_completed += 1

                if self._cycles_completed % 10 == 0:
                    log_worker_health(
                        logger,
                        "now_playing",
                        self._cycles_completed,
                        self._errors_total,
                        time.time() - self._start_time,
                        extra_stats={"plays_recorded": self._plays_recorded},
                    )
            except Exception as e:
                self._errors_total += 1
                logger.error(
                    "now_playing.cycle.failed",
                    extra={"error_type": type(e).__name__},
                    exc_info=True,
                )

            try:
                await asyncio.sleep(self.check_interval_seconds)
            except asyncio.CancelledError:
                break

    async def poll_once(self) -> int:
        """Run one cycle over all connected users.

        Returns:
            Number of plays recorded in this cycle
        """
        async with self.db.session_scope() as session:
            tokens = await SpotifyTokenRepository(session).list_all()
            user_ids = [token.user_id for token in tokens]

        if not user_ids:
            return 0

        results = await asyncio.gather(
            *(self._poll_user(user_id) for user_id in user_ids),
            return_exceptions=True,
        )

        recorded = 0
        for user_id, result in zip(user_ids, results, strict=True):
            if isinstance(result, BaseException):
                self._errors_total += 1
                logger.error(
                    "now_playing.user.failed",
                    extra={"user_id": user_id, "error_type": type(result).__name__},
                    exc_info=result,
                )
            elif result:
                recorded += 1

        self._plays_recorded += recorded
        return recorded

    def _should_record(self, user_id: int, uri: str, now: datetime) -> bool:
        last = self._last_seen.get(user_id)
        if last is None:
            return True
        last_uri, last_at = last
        return uri != last_uri or now - last_at >= self.debounce

    async def _seed_last_seen(self, plays: TrackPlayRepository, user_id: int) -> None:
        if user_id in self._last_seen:
            return
        latest = await plays.get_latest_play(user_id)
        if latest is None or not latest.spotify_track_uri or not latest.played_at:
            return
        try:
            played_at = datetime.fromisoformat(latest.played_at)
        except ValueError:
            return
        if played_at.tzinfo is None:
            played_at = played_at.replace(tzinfo=UTC)
        self._last_seen[user_id] = (latest.spotify_track_uri, played_at)

    async def _fresh_access_token(self, user_id: int) -> str | None:
        """Usable access token for a user, None if the user is skipped this cycle.

        Runs in its own session so a refreshed (and possibly rotated) token is committed
        before Spotify is asked for playback, whatever happens afterwards.
        """
        async with self.db.session_scope() as session:
            token = await SpotifyTokenRepository(session).get(user_id)
            if token is None:
                return None

            try:
                return await self.auth_service.ensure_fresh_token(session, token)
            except (TokenRefreshException, ExternalServiceError) as e:
                if isinstance(e, TokenRefreshException) and e.requires_reauth:
                    logger.warning(
                        "now_playing.reconnect_required",
                        extra={
                            "user_id": user_id,
                            "error_code": e.error_code,
                            "http_status": e.http_status,
                            "action": "user_must_reconnect",
                        },
                    )
                else:
                    logger.warning(
                        "now_playing.token_refresh.failed",
                        extra={
                            "user_id": user_id,
                            "error": e.message,
                            "action": "skipped_this_cycle",
                        },
                    )
                return None

    async def _poll_user(self, user_id: int) -> bool:
        """Poll one user. Returns True if a play was recorded."""
        access_token = await self._fresh_access_token(user_id)
        if access_token is None:
            return False

        # No session is open during the Spotify round-trip
        playback = await self.client.get_currently_playing(access_token)
        if playback is None:
            return False

        uri = playback["item"].get("uri")
        if not uri:
            return False

        async with self.db.session_scope() as session:
            plays = TrackPlayRepository(session)
            await self._seed_last_seen(plays, user_id)

            now = datetime.now(UTC)
            if not self._should_record(user_id, uri, now):
                return False

            await plays.add(user_id, **play_from_playback(playback, now))

        self._last_seen[user_id] = (uri, now)
        logger.debug(
            "now_playing.recorded", extra={"user_id": user_id, "track_uri": uri}
        )
        return True
