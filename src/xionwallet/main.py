"""Main entry point - runs the API server."""

import logging

import uvicorn

from xionwallet.api.app import create_app
from xionwallet.config import get_settings

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx logs full request URLs at INFO; keep it quiet outside debug
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


def main():
    """Main entry point."""
    settings = get_settings()
    configure_logging(settings.debug)

    logger.info("Starting xionwallet...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Chain: {settings.chain_id} via {settings.lcd_url}")

    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
