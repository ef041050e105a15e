"""FastAPI application factory and entrypoint."""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from listenstats import __version__
from listenstats.api import api_router
from listenstats.api.exception_handlers import register_exception_handlers
from listenstats.config import Settings, get_settings
from listenstats.infrastructure.lifecycle import lifespan
from listenstats.infrastructure.observability import RequestLoggingMiddleware


# Hey future me - pass `settings` in tests. They are put on app.state for the lifespan AND
# override the get_settings dependency, so routes and startup see the same values.
def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Listening Stats API",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    # Middleware runs in reverse order of registration: logging sees CORS responses too
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn (console script `listenstats`)."""
    settings = get_settings()
    uvicorn.run(
        "listenstats.main:app",
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
