"""Spotify OAuth Authentication Service.

Hey future me - this wraps SpotifyClient's low-level OAuth calls and owns token storage.

OAuth Flow:
1. authorization_url(user_id) -> consent URL with a signed `state` (JWT with the user id)
2. User visits URL, grants access, Spotify redirects to /callback?code&state
3. connect(code, state) -> verifies state, exchanges code, REPLACES the user's token row
4. ensure_fresh_token() -> refreshes an expired access token (used by the poller)

The state carries the user id because /callback is hit by the browser redirect, which
has no Authorization header. The signature is what makes it trustworthy.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from listenstats.config import Settings
from listenstats.domain.exceptions import ExternalServiceError
from listenstats.infrastructure.integrations.spotify_client import SpotifyClient
from listenstats.infrastructure.persistence import (
    Database,
    SpotifyTokenModel,
    SpotifyTokenRepository,
)
from listenstats.infrastructure.security import create_state_token, decode_state_token

logger = logging.getLogger(__name__)


@dataclass
class TokenResult:
    """Result of token operations.

    Hey future me - refresh_token might be None on refresh!
    Spotify doesn't always return a new refresh_token.
    """

    access_token: str
    refresh_token: str | None
    expires_in: int
    scope: str | None

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "TokenResult":
        access_token = data.get("access_token")
        if not access_token:
            raise ExternalServiceError("Spotify token response has no access_token")
        return cls(
            access_token=access_token,
            refresh_token=data.get("refresh_token"),
            expires_in=int(data.get("expires_in") or 3600),
            scope=data.get("scope"),
        )

    def expires_at(self, now: datetime | None = None) -> datetime:
        return (now or datetime.now(UTC)) + timedelta(seconds=self.expires_in)


class SpotifyAuthService:
    """Connects users to Spotify and keeps their access tokens usable."""

    def __init__(self, client: SpotifyClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    def authorization_url(self, user_id: int) -> str:
        """Consent URL for a logged-in user.

        Raises:
            ConfigurationError: Spotify client credentials are not set
        """
        state = create_state_token(user_id, self._settings)
        return self._client.get_authorization_url(state)

    async def connect(self, db: Database, code: str, state: str) -> int:
        """Finish the OAuth flow and store the user's tokens.

        Returns:
            The user id the state was issued for

        Raises:
            ValidationError: state is invalid or expired
            ExternalServiceError: Spotify rejected the code
        """
        user_id = decode_state_token(state, self._settings)
        result = TokenResult.from_response(await self._client.exchange_code(code))
        if not result.refresh_token:
            raise ExternalServiceError("Spotify token response has no refresh_token")

        async with db.session_scope() as session:
            await SpotifyTokenRepository(session).replace(
                user_id=user_id,
                access_token=result.access_token,
                refresh_token=result.refresh_token,
                token_expires_at=result.expires_at(),
                scopes=result.scope,
            )

        logger.info("spotify.connected", extra={"user_id": user_id})
        return user_id

    # Hey future me - the poller calls this once per user per cycle. Only an EXPIRED token
    # is refreshed, the refresh call counts against Spotify's rate limit like any other.
    async def ensure_fresh_token(
        self, session: AsyncSession, token: SpotifyTokenModel
    ) -> str:
        """Return a usable access token, refreshing and persisting it if expired.

        Raises:
            TokenRefreshException: Spotify refused the refresh token
            ExternalServiceError: other refresh failures
        """
        if not token.is_expired():
            return token.access_token

        result = TokenResult.from_response(
            await self._client.refresh_token(token.refresh_token)
        )
        await SpotifyTokenRepository(session).update_after_refresh(
            user_id=token.user_id,
            access_token=result.access_token,
            token_expires_at=result.expires_at(),
            refresh_token=result.refresh_token,
        )
        logger.info("spotify.token.refreshed", extra={"user_id": token.user_id})
        return result.access_token
