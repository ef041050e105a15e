"""SQLAlchemy ORM models for listenstats."""

from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! Datetimes come back naive.
# ALWAYS run DB datetimes through this before comparing with datetime.now(UTC),
# otherwise you get "can't compare offset-naive and offset-aware datetimes".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class UserModel(Base):
    """Registered user. Owns archives, track plays and optional Spotify tokens."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utc_now
    )

    archives: Mapped[list["ArchiveModel"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    spotify_tokens: Mapped["SpotifyTokenModel | None"] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )


class ArchiveModel(Base):
    """Metadata record of one uploaded history file. Never mutated after insert."""

    __tablename__ = "archives"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    original_filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    entry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    upload_date: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    user: Mapped[UserModel] = relationship(back_populates="archives")


# Hey future me - one row per playback event, either imported from an export file or
# recorded by the now-playing poller. Rows are immutable once written. The name columns
# are nullable on purpose: podcast episodes and local files come with null track names
# and the stats queries filter them out with WHERE clauses, not schema constraints.
# track_name/artist_name/album_name are the columns the stats read; the master_metadata_*
# columns keep Spotify's canonical fields exactly as exported.
class TrackPlayModel(Base):
    """A single historical or live playback event."""

    __tablename__ = "track_plays"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    track_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    artist_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    album_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Stored as the ISO string Spotify exports ("2023-01-05T21:14:03Z") so SQLite's
    # date()/strftime() work on it directly.
    played_at: Mapped[str | None] = mapped_column(String(40), nullable=True)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    platform: Mapped[str | None] = mapped_column(String(255), nullable=True)
    conn_country: Mapped[str | None] = mapped_column(String(8), nullable=True)
    master_metadata_track_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    master_metadata_album_artist_name: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )
    master_metadata_album_album_name: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )
    spotify_track_uri: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reason_start: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reason_end: Mapped[str | None] = mapped_column(String(64), nullable=True)
    shuffle: Mapped[bool] = mapped_column(nullable=False, default=False)
    skipped: Mapped[bool] = mapped_column(nullable=False, default=False)
    offline: Mapped[bool] = mapped_column(nullable=False, default=False)
    incognito_mode: Mapped[bool] = mapped_column(nullable=False, default=False)

    __table_args__ = (
        Index("ix_track_plays_user_played_at", "user_id", "played_at"),
        Index("ix_track_plays_user_uri", "user_id", "spotify_track_uri"),
    )


class SpotifyTokenModel(Base):
    """Spotify OAuth tokens for one user (1:1 with users).

    Replaced wholesale when the user reconnects, mutated in place on refresh.
    """

    __tablename__ = "spotify_tokens"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    token_expires_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )
    scopes: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    user: Mapped[UserModel] = relationship(back_populates="spotify_tokens")

    def is_expired(self) -> bool:
        """Check if token is expired (past expiration time)."""
        return utc_now() >= ensure_utc_aware(self.token_expires_at)
