"""API router initialization."""

# Hey future me, this aggregates all routers. Paths are mounted at the ROOT (no /api prefix),
# the frontend calls /login, /stats, /upload etc. directly.

from fastapi import APIRouter

from listenstats.api.routers import auth, data, health, spotify, stats, uploads

api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(uploads.router, tags=["Uploads"])
api_router.include_router(stats.router, tags=["Stats"])
api_router.include_router(data.router, tags=["Data"])
api_router.include_router(spotify.router, tags=["Spotify"])
api_router.include_router(health.router, tags=["Health"])

__all__ = ["api_router", "auth", "data", "health", "spotify", "stats", "uploads"]
