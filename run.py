"""Entry point for the Metrologi portal API.

Starts the FastAPI application with Uvicorn.  Intended to be executed
from the project root, e.g. in Docker where a single Python file is
specified as the command.

Host and port are read from ``PORTAL_HOST`` and ``PORTAL_PORT``
(defaults ``0.0.0.0`` and ``8000``).  All other configuration comes
from the environment variables read by
``metrologi_portal.app.core.config``.

Usage:
    python run.py
"""
import asyncio
import logging
import os

from uvicorn import Config, Server

from metrologi_portal.app.core.config import settings
from metrologi_portal.app.main import app


async def main() -> None:
    host = os.getenv("PORTAL_HOST", "0.0.0.0")
    port = int(os.getenv("PORTAL_PORT", "8000"))
    config = Config(app=app, host=host, port=port, reload=False, log_level=settings.log_level.lower())
    server = Server(config)
    logging.getLogger(__name__).info("Starting %s on %s:%s", settings.project_name, host, port)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
