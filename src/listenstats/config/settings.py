"""Application settings loaded from environment variables and .env."""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite+aiosqlite:///./data/listenstats.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Log all SQL statements")


class APISettings(BaseModel):
    """HTTP server settings."""

    host: str = "0.0.0.0"  # nosec B104 - container default
    port: int = 5000
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])


class SecuritySettings(BaseModel):
    """Password hashing and access token settings."""

    jwt_secret: str = Field(
        default="listenstats-dev-secret-change-me",
        description="HMAC secret for access tokens",
    )
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    # Spotify OAuth state tokens only need to survive the consent screen
    oauth_state_expire_minutes: int = 10
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)


class StorageSettings(BaseModel):
    """Upload storage settings."""

    upload_path: Path = Path("./uploads")
    max_upload_files: int = 10
    max_upload_size_mb: int = 50

    @property
    def max_upload_size_bytes(self) -> int:
        """Per-file size limit in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class SpotifySettings(BaseModel):
    """Spotify OAuth application credentials."""

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://localhost:5000/callback"
    scopes: str = "user-read-currently-playing user-read-playback-state"

    @property
    def is_configured(self) -> bool:
        """True when both client credentials are present."""
        return bool(self.client_id.strip() and self.client_secret.strip())


class PollerSettings(BaseModel):
    """Now-playing poller settings."""

    enabled: bool = True
    interval_seconds: int = Field(default=30, ge=1)
    debounce_seconds: int = Field(default=30, ge=0)


class ObservabilitySettings(BaseModel):
    """Logging output settings."""

    log_json_format: bool = False
    shutdown_timeout: float = 10.0


class Settings(BaseSettings):
    """Root application settings.

    Nested sections are set with a double underscore, e.g.
    ``SPOTIFY__CLIENT_ID=...`` or ``DATABASE__URL=...``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = "listenstats"
    debug: bool = False
    log_level: str = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    api: APISettings = Field(default_factory=APISettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    poller: PollerSettings = Field(default_factory=PollerSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    def _get_sqlite_db_path(self) -> Path | None:
        """Return the SQLite database file path, or None for other backends."""
        url = self.database.url
        if not url.startswith("sqlite"):
            return None
        _, _, path = url.partition(":///")
        if not path or path == ":memory:":
            return None
        return Path(path)

    def ensure_directories(self) -> None:
        """Create the upload directory and the SQLite parent directory."""
        self.storage.upload_path.mkdir(parents=True, exist_ok=True)
        db_path = self._get_sqlite_db_path()
        if db_path is not None and str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()
