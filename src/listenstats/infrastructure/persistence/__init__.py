"""Infrastructure persistence layer."""

from .database import Database
from .models import (
    ArchiveModel,
    Base,
    SpotifyTokenModel,
    TrackPlayModel,
    UserModel,
)
from .repositories import (
    ArchiveRepository,
    SpotifyTokenRepository,
    TrackPlayRepository,
    UserRepository,
)

__all__ = [
    # Database
    "Database",
    "Base",
    # Models
    "UserModel",
    "ArchiveModel",
    "TrackPlayModel",
    "SpotifyTokenModel",
    # Repositories
    "UserRepository",
    "ArchiveRepository",
    "TrackPlayRepository",
    "SpotifyTokenRepository",
]
