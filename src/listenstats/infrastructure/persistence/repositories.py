"""Repository implementations for data access.

Hey future me - ALL SQL lives here. Services and routers never build statements
themselves, they call a repository method scoped by user_id. The stats queries are
the only non-trivial part: GROUP BY aggregates ranked with ROW_NUMBER() so the
top-N cut and the tie-break (play count, then total listening time) happen in SQL.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    ColumnElement,
    Select,
    case,
    delete,
    distinct,
    func,
    insert,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from listenstats.domain.exceptions import DuplicateEntityException

from .models import ArchiveModel, SpotifyTokenModel, TrackPlayModel, UserModel, utc_now

logger = logging.getLogger(__name__)

# Top-N cut applied to every ranked stats category
DEFAULT_RANK_LIMIT = 10

# Columns that make two plays "the same play" for clear-data dedup
DEDUP_COLUMNS = (
    TrackPlayModel.track_name,
    TrackPlayModel.artist_name,
    TrackPlayModel.album_name,
    TrackPlayModel.played_at,
    TrackPlayModel.duration_ms,
    TrackPlayModel.platform,
    TrackPlayModel.conn_country,
    TrackPlayModel.spotify_track_uri,
)


def _present(column: Any) -> ColumnElement[bool]:
    """Grouping key is neither NULL nor an empty string."""
    return column.isnot(None) & (column != "")


def _flag_count(column: Any) -> Any:
    """SUM over a boolean column (true counts as 1)."""
    return func.sum(case((column == True, 1), else_=0))  # noqa: E712


def _flag_ratio(column: Any) -> Any:
    """AVG over a boolean column, i.e. the share of true rows."""
    return func.avg(case((column == True, 1.0), else_=0.0))  # noqa: E712


def _rows(result: Any) -> list[dict[str, Any]]:
    return [dict(row._mapping) for row in result.all()]


class UserRepository:
    """Repository for registered users."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, user_id: int) -> UserModel | None:
        return await self.session.get(UserModel, user_id)

    async def get_by_email(self, email: str) -> UserModel | None:
        stmt = select(UserModel).where(UserModel.email == email)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, email: str, password_hash: str) -> UserModel:
        """Insert a user and flush so the generated id is available.

        Raises:
            DuplicateEntityException: the email is already taken (the unique index
                catches concurrent registrations that both passed get_by_email)
        """
        model = UserModel(email=email, password_hash=password_hash)
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateEntityException("Email already exists") from e
        return model


class ArchiveRepository:
    """Repository for uploaded file records."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(
        self,
        user_id: int,
        file_path: str,
        original_filename: str | None = None,
        entry_count: int = 0,
    ) -> ArchiveModel:
        model = ArchiveModel(
            user_id=user_id,
            file_path=file_path,
            original_filename=original_filename,
            entry_count=entry_count,
        )
        self.session.add(model)
        await self.session.flush()
        return model

    async def list_for_user(self, user_id: int) -> list[ArchiveModel]:
        """All archives of a user, newest upload first."""
        stmt = (
            select(ArchiveModel)
            .where(ArchiveModel.user_id == user_id)
            .order_by(ArchiveModel.upload_date.desc(), ArchiveModel.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_file_paths(self, user_id: int) -> list[str]:
        stmt = select(ArchiveModel.file_path).where(ArchiveModel.user_id == user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_for_user(self, user_id: int) -> int:
        stmt = (
            delete(ArchiveModel)
            .where(ArchiveModel.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0


class TrackPlayRepository:
    """Repository for playback events and the aggregate queries over them."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # =========================================================================
    # WRITES
    # =========================================================================

    async def add(self, user_id: int, **fields: Any) -> TrackPlayModel:
        model = TrackPlayModel(user_id=user_id, **fields)
        self.session.add(model)
        await self.session.flush()
        return model

    async def add_many(self, user_id: int, plays: list[dict[str, Any]]) -> int:
        """Bulk insert plays for one user. Returns the number of rows written."""
        if not plays:
            return 0
        rows = [{**play, "user_id": user_id} for play in plays]
        await self.session.execute(insert(TrackPlayModel), rows)
        return len(rows)

    async def delete_duplicates(self, user_id: int) -> int:
        """Delete exact duplicate plays of a user, keeping the oldest row of each group.

        GROUP BY treats NULLs as equal, so two plays that both lack e.g. a platform
        still count as duplicates.
        """
        keep_ids = (
            select(func.min(TrackPlayModel.id))
            .where(TrackPlayModel.user_id == user_id)
            .group_by(*DEDUP_COLUMNS)
        )
        stmt = (
            delete(TrackPlayModel)
            .where(
                TrackPlayModel.user_id == user_id,
                TrackPlayModel.id.not_in(keep_ids),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def delete_for_user(self, user_id: int) -> int:
        stmt = (
            delete(TrackPlayModel)
            .where(TrackPlayModel.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    # =========================================================================
    # SIMPLE AGGREGATES
    # =========================================================================

    async def count_for_user(self, user_id: int) -> int:
        stmt = select(func.count(TrackPlayModel.id)).where(
            TrackPlayModel.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def total_duration_ms(self, user_id: int, on_date: date | None = None) -> int:
        """SUM(duration_ms) for a user, optionally limited to one calendar day."""
        stmt = select(func.sum(TrackPlayModel.duration_ms)).where(
            TrackPlayModel.user_id == user_id
        )
        if on_date is not None:
            stmt = stmt.where(func.date(TrackPlayModel.played_at) == on_date.isoformat())
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def get_latest_play(self, user_id: int) -> TrackPlayModel | None:
        stmt = (
            select(TrackPlayModel)
            .where(TrackPlayModel.user_id == user_id)
            .order_by(TrackPlayModel.played_at.desc(), TrackPlayModel.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # =========================================================================
    # RANKED STATS
    # =========================================================================

    def _scoped(
        self,
        user_id: int,
        start: date | None = None,
        end: date | None = None,
    ) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = [TrackPlayModel.user_id == user_id]
        if start is not None:
            conditions.append(func.date(TrackPlayModel.played_at) >= start.isoformat())
        if end is not None:
            conditions.append(func.date(TrackPlayModel.played_at) <= end.isoformat())
        return conditions

    async def _ranked(
        self,
        columns: list[Any],
        group_by: list[Any],
        where: list[ColumnElement[bool]],
        limit: int,
    ) -> list[dict[str, Any]]:
        """Run a grouped aggregate and keep the top `limit` groups.

        Hey future me - ROW_NUMBER() is evaluated AFTER GROUP BY, so ordering by
        COUNT(*) / SUM(duration_ms) inside OVER() ranks the groups. The outer select
        drops the rank column and cuts at `limit`. play_count and total_time are
        always part of `columns`.
        """
        rank = (
            func.row_number()
            .over(
                order_by=(
                    func.count().desc(),
                    func.coalesce(func.sum(TrackPlayModel.duration_ms), 0).desc(),
                )
            )
            .label("rank")
        )
        inner = select(*columns, rank).where(*where).group_by(*group_by).subquery()
        visible = [column for column in inner.c if column.name != "rank"]
        stmt: Select[Any] = (
            select(*visible).where(inner.c.rank <= limit).order_by(inner.c.rank)
        )
        result = await self.session.execute(stmt)
        return _rows(result)

    async def top_artists(
        self,
        user_id: int,
        limit: int = DEFAULT_RANK_LIMIT,
        start: date | None = None,
        end: date | None = None,
    ) -> list[dict[str, Any]]:
        tp = TrackPlayModel
        return await self._ranked(
            columns=[
                tp.artist_name,
                func.count().label("play_count"),
                func.coalesce(func.sum(tp.duration_ms), 0).label("total_time"),
                func.group_concat(distinct(tp.album_name)).label("albums"),
                func.count(distinct(tp.platform)).label("platforms_used"),
                _flag_count(tp.skipped).label("skipped_count"),
                _flag_count(tp.shuffle).label("shuffle_count"),
            ],
            group_by=[tp.artist_name],
            where=[*self._scoped(user_id, start, end), _present(tp.artist_name)],
            limit=limit,
        )

    async def top_tracks(
        self, user_id: int, limit: int = DEFAULT_RANK_LIMIT
    ) -> list[dict[str, Any]]:
        tp = TrackPlayModel
        return await self._ranked(
            columns=[
                tp.track_name,
                tp.artist_name,
                tp.album_name,
                func.count().label("play_count"),
                func.coalesce(func.sum(tp.duration_ms), 0).label("total_time"),
                func.max(tp.spotify_track_uri).label("spotify_track_uri"),
                func.count(distinct(tp.platform)).label("platforms_used"),
                _flag_count(tp.skipped).label("skipped_count"),
                _flag_count(tp.shuffle).label("shuffle_count"),
                func.group_concat(distinct(tp.conn_country)).label("countries_played"),
            ],
            group_by=[tp.track_name, tp.artist_name, tp.album_name],
            where=[*self._scoped(user_id), _present(tp.track_name)],
            limit=limit,
        )

    async def top_albums(
        self, user_id: int, limit: int = DEFAULT_RANK_LIMIT
    ) -> list[dict[str, Any]]:
        tp = TrackPlayModel
        return await self._ranked(
            columns=[
                tp.album_name,
                tp.artist_name,
                func.count().label("play_count"),
                func.count(distinct(tp.track_name)).label("unique_tracks"),
                func.coalesce(func.sum(tp.duration_ms), 0).label("total_time"),
            ],
            group_by=[tp.album_name, tp.artist_name],
            where=[*self._scoped(user_id), _present(tp.album_name)],
            limit=limit,
        )

    async def platform_stats(
        self, user_id: int, limit: int = DEFAULT_RANK_LIMIT
    ) -> list[dict[str, Any]]:
        tp = TrackPlayModel
        return await self._ranked(
            columns=[
                tp.platform,
                func.count().label("play_count"),
                func.count(distinct(tp.track_name)).label("unique_tracks"),
                func.count(distinct(tp.artist_name)).label("unique_artists"),
                func.coalesce(func.sum(tp.duration_ms), 0).label("total_time"),
                func.count(distinct(tp.conn_country)).label("countries_count"),
                _flag_count(tp.skipped).label("skipped_count"),
                _flag_count(tp.shuffle).label("shuffle_count"),
                func.group_concat(distinct(tp.conn_country)).label("countries"),
            ],
            group_by=[tp.platform],
            where=[*self._scoped(user_id), _present(tp.platform)],
            limit=limit,
        )

    async def country_stats(
        self, user_id: int, limit: int = DEFAULT_RANK_LIMIT
    ) -> list[dict[str, Any]]:
        tp = TrackPlayModel
        return await self._ranked(
            columns=[
                tp.conn_country,
                func.count().label("play_count"),
                func.count(distinct(tp.track_name)).label("unique_tracks"),
                func.count(distinct(tp.artist_name)).label("unique_artists"),
                func.coalesce(func.sum(tp.duration_ms), 0).label("total_time"),
                func.count(distinct(tp.platform)).label("platforms_count"),
                func.group_concat(distinct(tp.platform)).label("platforms"),
            ],
            group_by=[tp.conn_country],
            where=[*self._scoped(user_id), _present(tp.conn_country)],
            limit=limit,
        )

    async def listening_patterns(self, user_id: int) -> list[dict[str, Any]]:
        """Per-hour aggregates ("00".."23"), ordered by hour. Not ranked or cut."""
        tp = TrackPlayModel
        hour = func.strftime("%H", tp.played_at)
        stmt = (
            select(
                hour.label("hour"),
                func.count().label("play_count"),
                func.coalesce(func.sum(tp.duration_ms), 0).label("total_time"),
                _flag_ratio(tp.shuffle).label("shuffle_ratio"),
                _flag_ratio(tp.skipped).label("skip_ratio"),
            )
            .where(*self._scoped(user_id), hour.isnot(None))
            .group_by(hour)
            .order_by(hour)
        )
        result = await self.session.execute(stmt)
        return _rows(result)


class SpotifyTokenRepository:
    """Repository for per-user Spotify OAuth tokens."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: int) -> SpotifyTokenModel | None:
        return await self.session.get(SpotifyTokenModel, user_id)

    async def list_all(self) -> list[SpotifyTokenModel]:
        result = await self.session.execute(select(SpotifyTokenModel))
        return list(result.scalars().all())

    # Hey future me - re-auth REPLACES the row (delete + insert in the caller's
    # transaction) instead of patching it, so no stale scopes survive a reconnect.
    async def replace(
        self,
        user_id: int,
        access_token: str,
        refresh_token: str,
        token_expires_at: datetime,
        scopes: str | None = None,
    ) -> SpotifyTokenModel:
        await self.session.execute(
            delete(SpotifyTokenModel).where(SpotifyTokenModel.user_id == user_id)
        )
        model = SpotifyTokenModel(
            user_id=user_id,
            access_token=access_token,
            refresh_token=refresh_token,
            token_expires_at=token_expires_at,
            scopes=scopes,
        )
        self.session.add(model)
        await self.session.flush()
        return model

    async def update_after_refresh(
        self,
        user_id: int,
        access_token: str,
        token_expires_at: datetime,
        refresh_token: str | None = None,
    ) -> bool:
        """Update a token after refresh. Keeps the old refresh token if none is given.

        Returns:
            True if token was updated, False if no token exists
        """
        model = await self.get(user_id)
        if model is None:
            return False
        model.access_token = access_token
        model.token_expires_at = token_expires_at
        if refresh_token:
            model.refresh_token = refresh_token
        model.updated_at = utc_now()
        return True
