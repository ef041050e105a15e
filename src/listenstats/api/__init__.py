"""HTTP API: routers, schemas, dependencies and exception handlers."""

from listenstats.api.routers import api_router

__all__ = ["api_router"]
