"""Integration tests for the Spotify connect endpoints."""

from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from listenstats.api.dependencies import get_spotify_client
from listenstats.config import Settings
from listenstats.infrastructure.integrations.spotify_client import SpotifyClient
from listenstats.infrastructure.security import create_state_token


def test_auth_url_points_to_consent_screen(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    response = client.get("/spotify/auth", headers=auth_headers)

    assert response.status_code == 200
    url = urlparse(response.json()["url"])
    query = parse_qs(url.query)
    assert url.netloc == "accounts.spotify.com"
    assert query["client_id"] == ["test-client-id"]
    assert query["response_type"] == ["code"]
    assert query["state"][0]


def test_auth_url_requires_login(client: TestClient) -> None:
    assert client.get("/spotify/auth").status_code == 401


def test_callback_with_error_param(client: TestClient) -> None:
    response = client.get("/callback", params={"error": "access_denied"})

    assert response.status_code == 400
    assert "access_denied" in response.json()["error"]


def test_callback_missing_code(client: TestClient) -> None:
    response = client.get("/callback", params={"state": "abc"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing code or state"}


def test_callback_with_forged_state(client: TestClient) -> None:
    response = client.get("/callback", params={"code": "abc", "state": "forged"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid OAuth state"}


def test_callback_stores_connection(
    client: TestClient, auth_headers: dict[str, str], settings: Settings
) -> None:
    fake = MagicMock(spec=SpotifyClient)
    fake.exchange_code = AsyncMock(
        return_value={
            "access_token": "access",
            "refresh_token": "refresh",
            "expires_in": 3600,
            "scope": "user-read-currently-playing",
        }
    )
    client.app.dependency_overrides[get_spotify_client] = lambda: fake
    user_id = client.post(
        "/register", json={"email": "spotify@example.com", "password": "pw"}
    ).json()["id"]

    response = client.get(
        "/callback",
        params={"code": "the-code", "state": create_state_token(user_id, settings)},
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Spotify connected"}
    fake.exchange_code.assert_awaited_once_with("the-code")
