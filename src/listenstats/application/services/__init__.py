"""Application services."""

from listenstats.application.services.auth_service import AuthService
from listenstats.application.services.data_cleanup_service import (
    ClearDataResult,
    DataCleanupService,
)
from listenstats.application.services.import_service import (
    ImportedFile,
    ImportService,
    UploadedFile,
)
from listenstats.application.services.spotify_auth_service import (
    SpotifyAuthService,
    TokenResult,
)
from listenstats.application.services.stats_service import StatsService

__all__ = [
    "AuthService",
    "ClearDataResult",
    "DataCleanupService",
    "ImportService",
    "ImportedFile",
    "SpotifyAuthService",
    "StatsService",
    "TokenResult",
    "UploadedFile",
]
