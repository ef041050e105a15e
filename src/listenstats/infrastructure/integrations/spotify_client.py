"""Spotify HTTP client for the authorization-code OAuth flow and playback state."""

import asyncio
import base64
import logging
from typing import Any, cast
from urllib.parse import urlencode

import httpx

from listenstats.config.settings import SpotifySettings
from listenstats.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    TokenRefreshException,
)

logger = logging.getLogger(__name__)


# Retry-After may also be an HTTP date, only plain seconds are honored
def _retry_after_seconds(response: httpx.Response) -> int | None:
    value = response.headers.get("Retry-After", "1").strip() or "1"
    try:
        seconds = int(value)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


class SpotifyClient:
    """HTTP client for Spotify accounts and Web API calls."""

    AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
    TOKEN_URL = "https://accounts.spotify.com/api/token"  # nosec B105 - public endpoint URL
    API_BASE_URL = "https://api.spotify.com/v1"

    # Upper bound for honoring a Retry-After header inside a single poll
    MAX_RETRY_AFTER_SECONDS = 5

    # Hey future me, the httpx client is created lazily so this class can be built outside a
    # running event loop (lifespan, dependencies). Tests pass their own client with an
    # httpx.MockTransport, in that case we never close it ourselves.
    def __init__(
        self,
        settings: SpotifySettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self._client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _require_credentials(self) -> None:
        if not self.settings.is_configured:
            raise ConfigurationError(
                "Spotify credentials are not configured. "
                "Set SPOTIFY__CLIENT_ID and SPOTIFY__CLIENT_SECRET in your environment."
            )
        if not self.settings.redirect_uri.strip():
            raise ConfigurationError(
                "SPOTIFY__REDIRECT_URI is not configured. "
                "It must match the callback URL registered in the Spotify dashboard."
            )

    def _basic_auth_header(self) -> dict[str, str]:
        raw = f"{self.settings.client_id}:{self.settings.client_secret}".encode()
        return {
            "Authorization": f"Basic {base64.b64encode(raw).decode('ascii')}",
            "Content-Type": "application/x-www-form-urlencoded",
        }

    def get_authorization_url(self, state: str) -> str:
        """Build the Spotify consent URL.

        Args:
            state: Opaque value echoed back to /callback (identifies the user)

        Raises:
            ConfigurationError: If client credentials or redirect URI are missing
        """
        self._require_credentials()
        params = {
            "response_type": "code",
            "client_id": self.settings.client_id,
            "scope": self.settings.scopes,
            "redirect_uri": self.settings.redirect_uri,
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    # Yo future me, the code is single-use and short-lived, and redirect_uri MUST be the exact
    # same string used for the consent URL or Spotify answers 400 invalid_grant.
    async def exchange_code(self, code: str) -> dict[str, Any]:
        """Exchange an authorization code for tokens.

        Returns:
            Token response with access_token, refresh_token, expires_in, scope

        Raises:
            ExternalServiceError: If Spotify rejects the exchange
        """
        self._require_credentials()
        client = await self._get_client()
        response = await client.post(
            self.TOKEN_URL,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.settings.redirect_uri,
            },
            headers=self._basic_auth_header(),
        )
        if response.status_code != 200:
            logger.warning(
                "spotify.code_exchange.failed",
                extra={"status_code": response.status_code},
            )
            raise ExternalServiceError(
                f"Spotify token exchange failed ({response.status_code})",
                status_code=response.status_code,
            )
        return cast(dict[str, Any], response.json())

    # Hey future me - Spotify often does NOT return a new refresh_token here. Callers must
    # keep the old one when the key is missing (SpotifyTokenRepository.update_after_refresh
    # already does that).
    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """Refresh an access token.

        Raises:
            TokenRefreshException: If Spotify refuses the refresh token
            ExternalServiceError: For other non-success responses
        """
        self._require_credentials()
        client = await self._get_client()
        response = await client.post(
            self.TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            headers=self._basic_auth_header(),
        )

        if response.status_code in (400, 401, 403):
            error_code: str | None = None
            try:
                error_code = response.json().get("error")
            except ValueError:
                pass
            raise TokenRefreshException(
                error_code=error_code, http_status=response.status_code
            )
        if response.status_code != 200:
            raise ExternalServiceError(
                f"Spotify token refresh failed ({response.status_code})",
                status_code=response.status_code,
            )
        return cast(dict[str, Any], response.json())

    async def _api_get(self, path: str, access_token: str) -> httpx.Response:
        """GET against the Web API, retrying once on 429 if Retry-After is short."""
        client = await self._get_client()
        headers = {"Authorization": f"Bearer {access_token}"}
        url = f"{self.API_BASE_URL}{path}"

        response = await client.get(url, headers=headers)
        if response.status_code == 429:
            retry_after = _retry_after_seconds(response)
            if retry_after is None or retry_after > self.MAX_RETRY_AFTER_SECONDS:
                raise ExternalServiceError(
                    "Spotify rate limited, Retry-After: "
                    f"{response.headers.get('Retry-After', '-')}",
                    status_code=429,
                )
            await asyncio.sleep(retry_after)
            response = await client.get(url, headers=headers)
        return response

    async def get_currently_playing(self, access_token: str) -> dict[str, Any] | None:
        """Fetch the user's currently playing item.

        Returns:
            The raw playback object, or None when nothing is playing (204 / no item)

        Raises:
            ExternalServiceError: On any other non-success response
        """
        response = await self._api_get("/me/player/currently-playing", access_token)
        if response.status_code == 204 or not response.content:
            return None
        if response.status_code != 200:
            raise ExternalServiceError(
                f"Spotify currently-playing failed ({response.status_code})",
                status_code=response.status_code,
            )
        payload = cast(dict[str, Any], response.json())
        if not payload.get("item"):
            return None
        return payload
