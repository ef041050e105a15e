"""listenstats - personal Spotify listening analytics."""

__version__ = "1.0.0"
