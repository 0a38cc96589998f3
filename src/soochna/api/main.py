"""ASGI entry point.

`uvicorn soochna.api.main:app` serves the notice board; the
soochna-api console script calls run() with host, port and reload
taken from settings.
"""

import logging

import uvicorn

from soochna.api import create_app
from soochna.core.settings import configure_logging, get_settings

logger = logging.getLogger(__name__)

app = create_app()


def run() -> None:
    """Serve the API with uvicorn."""
    settings = get_settings()
    configure_logging(settings)

    reload = settings.is_development and settings.debug
    logger.info(
        "Serving Soochna on %s:%d (environment=%s, reload=%s)",
        settings.api_host,
        settings.api_port,
        settings.environment.value,
        reload,
    )
    uvicorn.run(
        "soochna.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        reload=reload,
    )


if __name__ == "__main__":
    run()
