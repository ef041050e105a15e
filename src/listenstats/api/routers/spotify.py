"""Spotify OAuth connect endpoints."""

# Hey future me - /callback is hit by the BROWSER after the consent screen, so it has no
# Authorization header. The user is identified by the signed state created in
# /spotify/auth. Spotify appends ?error=access_denied when the user clicks "Cancel".

from fastapi import APIRouter, Depends

from listenstats.api.dependencies import (
    get_current_user_id,
    get_db,
    get_spotify_auth_service,
)
from listenstats.application.services import SpotifyAuthService
from listenstats.domain.exceptions import ValidationError
from listenstats.infrastructure.persistence import Database

router = APIRouter()


@router.get("/spotify/auth")
async def spotify_auth_url(
    user_id: int = Depends(get_current_user_id),
    auth_service: SpotifyAuthService = Depends(get_spotify_auth_service),
) -> dict[str, str]:
    """Consent URL to open in the browser. 503 if Spotify is not configured."""
    return {"url": auth_service.authorization_url(user_id)}


@router.get("/callback")
async def spotify_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: Database = Depends(get_db),
    auth_service: SpotifyAuthService = Depends(get_spotify_auth_service),
) -> dict[str, str]:
    """OAuth redirect target: store the user's Spotify tokens."""
    if error:
        raise ValidationError(f"Spotify authorization failed: {error}")
    if not code or not state:
        raise ValidationError("Missing code or state")

    await auth_service.connect(db, code, state)
    return {"message": "Spotify connected"}
