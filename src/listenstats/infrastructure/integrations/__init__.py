"""External integration client implementations."""

from listenstats.infrastructure.integrations.spotify_client import SpotifyClient

__all__ = ["SpotifyClient"]
