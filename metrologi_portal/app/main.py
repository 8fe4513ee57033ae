"""
Main entrypoint for the Metrologi portal API.

``create_app`` assembles the FastAPI application: logging, the
versioned routers and database migrations at startup.  The module-level
``app`` lets uvicorn find it directly::

    uvicorn metrologi_portal.app.main:app --reload
"""

from fastapi import FastAPI

from .core.config import settings
from .core.logging_config import setup_logging
from .api.v1.router import router as v1_router
from .core.db import init_db


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    # logging first so that startup messages are captured
    setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)

    app.include_router(v1_router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event() -> None:
        # creates the database file on first run and applies pending migrations
        init_db()

    return app


app = create_app()
