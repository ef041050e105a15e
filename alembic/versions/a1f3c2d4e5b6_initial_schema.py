"""initial schema: users, archives, track_plays, spotify_tokens

Revision ID: a1f3c2d4e5b6
Revises:
Create Date: 2026-10-18 12:00:00.000000

Hey future me - this mirrors infrastructure/persistence/models.py exactly.
track_plays.played_at is a STRING on purpose (the ISO timestamp from the export,
e.g. "2023-01-05T21:14:03Z") so SQLite's date()/strftime() can group on it.
All child tables cascade on user delete.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1f3c2d4e5b6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "archives",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("file_path", sa.Text(), nullable=False),
        sa.Column("original_filename", sa.String(length=255), nullable=True),
        sa.Column("entry_count", sa.Integer(), nullable=False),
        sa.Column(
            "upload_date",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_archives_user_id", "archives", ["user_id"])

    op.create_table(
        "track_plays",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("track_name", sa.Text(), nullable=True),
        sa.Column("artist_name", sa.Text(), nullable=True),
        sa.Column("album_name", sa.Text(), nullable=True),
        sa.Column("played_at", sa.String(length=40), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=False),
        sa.Column("platform", sa.String(length=255), nullable=True),
        sa.Column("conn_country", sa.String(length=8), nullable=True),
        sa.Column("master_metadata_track_name", sa.Text(), nullable=True),
        sa.Column("master_metadata_album_artist_name", sa.Text(), nullable=True),
        sa.Column("master_metadata_album_album_name", sa.Text(), nullable=True),
        sa.Column("spotify_track_uri", sa.String(length=255), nullable=True),
        sa.Column("reason_start", sa.String(length=64), nullable=True),
        sa.Column("reason_end", sa.String(length=64), nullable=True),
        sa.Column("shuffle", sa.Boolean(), nullable=False),
        sa.Column("skipped", sa.Boolean(), nullable=False),
        sa.Column("offline", sa.Boolean(), nullable=False),
        sa.Column("incognito_mode", sa.Boolean(), nullable=False),
    )
    op.create_index(
        "ix_track_plays_user_played_at", "track_plays", ["user_id", "played_at"]
    )
    op.create_index(
        "ix_track_plays_user_uri", "track_plays", ["user_id", "spotify_track_uri"]
    )

    op.create_table(
        "spotify_tokens",
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=False),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scopes", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("spotify_tokens")
    op.drop_index("ix_track_plays_user_uri", table_name="track_plays")
    op.drop_index("ix_track_plays_user_played_at", table_name="track_plays")
    op.drop_table("track_plays")
    op.drop_index("ix_archives_user_id", table_name="archives")
    op.drop_table("archives")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
