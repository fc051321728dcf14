"""Entry point for the Campus Hub API server.

Host and port come from ``APP_HOST`` and ``APP_PORT`` (see
``campus_hub_api.app.core.config``); defaults are ``0.0.0.0`` and
``8000``.

Usage:
    python run.py
"""
import asyncio
import logging

from uvicorn import Config, Server

from campus_hub_api.app.core.config import settings
from campus_hub_api.app.main import app


async def main() -> None:
    """Serve the API until interrupted."""
    config = Config(
        app=app,
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.getLogger(__name__).info("Server stopped")
