"""Shared fixtures: isolated settings, a fresh SQLite file per test, an app client.

Hey future me - every test gets its own tmp_path, so the database file and the upload
directory never leak between tests. The poller is disabled in the app fixtures, tests
drive NowPlayingWorker.poll_once() directly instead.
"""

import json
from collections.abc import AsyncIterator, Iterator
from typing import Any

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from listenstats.config.settings import (
    DatabaseSettings,
    PollerSettings,
    SecuritySettings,
    Settings,
    SpotifySettings,
    StorageSettings,
)
from listenstats.infrastructure.persistence import Database, UserRepository
from listenstats.main import create_app


@pytest.fixture
def settings(tmp_path: Any) -> Settings:
    return Settings(
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"),
        storage=StorageSettings(upload_path=tmp_path / "uploads"),
        security=SecuritySettings(jwt_secret="test-secret", bcrypt_rounds=4),
        spotify=SpotifySettings(client_id="test-client-id", client_secret="test-secret"),
        poller=PollerSettings(enabled=False),
    )


@pytest_asyncio.fixture
async def db(settings: Settings) -> AsyncIterator[Database]:
    settings.ensure_directories()
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest_asyncio.fixture
async def user_id(db: Database) -> int:
    async with db.session_scope() as session:
        user = await UserRepository(session).add("listener@example.com", "x")
        return user.id


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


def register_and_login(
    client: TestClient, email: str = "listener@example.com", password: str = "hunter22"
) -> dict[str, str]:
    """Create an account and return ready-to-use Authorization headers."""
    response = client.post("/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    response = client.post("/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


@pytest.fixture
def login(client: TestClient) -> Any:
    """Callable fixture: login(email=..., password=...) -> auth headers."""

    def _login(email: str = "listener@example.com", password: str = "hunter22") -> dict[str, str]:
        return register_and_login(client, email, password)

    return _login


@pytest.fixture
def auth_headers(client: TestClient) -> dict[str, str]:
    return register_and_login(client)


SAMPLE_HISTORY: list[dict[str, Any]] = [
    {
        "ts": "2023-01-05T21:14:03Z",
        "ms_played": 180000,
        "master_metadata_track_name": "Song A",
        "master_metadata_album_artist_name": "Artist One",
        "master_metadata_album_album_name": "Album X",
        "spotify_track_uri": "spotify:track:a",
        "platform": "android",
        "conn_country": "DE",
        "shuffle": True,
        "skipped": False,
    },
    {
        "ts": "2023-01-05T22:00:00Z",
        "ms_played": 120000,
        "master_metadata_track_name": "Song B",
        "master_metadata_album_artist_name": "Artist Two",
        "master_metadata_album_album_name": "Album Y",
        "spotify_track_uri": "spotify:track:b",
        "platform": "ios",
        "conn_country": "US",
        "shuffle": False,
        "skipped": True,
    },
    {
        "ts": "2023-02-10T08:30:00Z",
        "ms_played": 60000,
        "master_metadata_track_name": "Song A",
        "master_metadata_album_artist_name": "Artist One",
        "master_metadata_album_album_name": "Album X",
        "spotify_track_uri": "spotify:track:a",
        "platform": "android",
        "conn_country": "DE",
    },
]


@pytest.fixture
def upload(client: TestClient) -> Any:
    """Callable fixture: upload(headers, (name, bytes), ...) -> response.

    Without files it uploads SAMPLE_HISTORY as StreamingHistory0.json.
    """

    def _upload(headers: dict[str, str], *files: tuple[str, bytes]) -> Any:
        if not files:
            files = (("StreamingHistory0.json", json.dumps(SAMPLE_HISTORY).encode()),)
        return client.post(
            "/upload",
            headers=headers,
            files=[("files", (name, content, "application/json")) for name, content in files],
        )

    return _upload
