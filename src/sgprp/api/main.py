"""SGP-RP API service entry point.

This module provides the application instance for ASGI servers (uvicorn)
and a run() function for direct execution.
"""

import logging

from sgprp.api import create_app
from sgprp.core.config import Settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# This is what uvicorn references: sgprp.api.main:app
app = create_app()


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings.log_level."""
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(settings.log_level)


def run() -> None:
    """Run the API server using uvicorn.

    Called by the sgprp-api console script defined in pyproject.toml.
    """
    import uvicorn

    from sgprp.core.settings import get_settings

    settings = get_settings()
    configure_logging(settings)

    logger.info("Starting SGP-RP API on %s:%d", settings.api_host, settings.api_port)

    uvicorn.run(
        "sgprp.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


if __name__ == "__main__":
    run()
