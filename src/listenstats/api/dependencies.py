"""Dependency injection for API endpoints."""

import logging
from collections.abc import AsyncGenerator
from typing import cast

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from listenstats.application.services import (
    AuthService,
    DataCleanupService,
    ImportService,
    SpotifyAuthService,
    StatsService,
)
from listenstats.config import Settings, get_settings
from listenstats.domain.exceptions import AuthenticationError, AuthorizationError
from listenstats.infrastructure.integrations.spotify_client import SpotifyClient
from listenstats.infrastructure.persistence import Database, UserRepository
from listenstats.infrastructure.security import decode_access_token

logger = logging.getLogger(__name__)


# Hey future me - the Database lives on app.state (created in the lifespan). If it is missing,
# startup failed or a test forgot the lifespan, answer 503 instead of an AttributeError.
def get_db(request: Request) -> Database:
    """Get the Database instance from app state."""
    if not hasattr(request.app.state, "db"):
        raise HTTPException(status_code=503, detail="Database not initialized")
    return cast(Database, request.app.state.db)


# Use this in endpoint params like: "session: AsyncSession = Depends(get_db_session)".
# One transaction per request: commit when the endpoint returns, rollback if it raises.
async def get_db_session(
    db: Database = Depends(get_db),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped database session."""
    async with db.session_scope() as session:
        yield session


def get_spotify_client(request: Request) -> SpotifyClient:
    """Shared Spotify client from app state (one connection pool per process)."""
    client = getattr(request.app.state, "spotify_client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Spotify client not initialized")
    return cast(SpotifyClient, client)


# Hey future me - the order of checks mirrors what clients see:
# no header -> 401, "Bearer" without a token -> 401, bad/expired token -> 403,
# token for a deleted user -> 403. decode_access_token raises the 403 cases itself.
async def get_current_user_id(
    authorization: str | None = Header(default=None),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> int:
    """Resolve the bearer token to an existing user id."""
    if not authorization:
        raise AuthenticationError("Authorization header missing")

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Access token missing")

    user_id = decode_access_token(token, settings)
    async with db.session_scope() as session:
        user = await UserRepository(session).get_by_id(user_id)
    if user is None:
        raise AuthorizationError("User not found")
    return user_id


def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(session, settings)


def get_import_service(
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ImportService:
    return ImportService(db, settings)


def get_stats_service(db: Database = Depends(get_db)) -> StatsService:
    return StatsService(db)


def get_data_cleanup_service(db: Database = Depends(get_db)) -> DataCleanupService:
    return DataCleanupService(db)


def get_spotify_auth_service(
    client: SpotifyClient = Depends(get_spotify_client),
    settings: Settings = Depends(get_settings),
) -> SpotifyAuthService:
    return SpotifyAuthService(client, settings)
