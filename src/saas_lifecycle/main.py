"""Main entry point for the SaaS subscription lifecycle service."""

import logging
import sys

import uvicorn
from dotenv import load_dotenv

from saas_lifecycle.config import get_settings


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()

    log_format = (
        '{"time": "%(asctime)s", "level": "%(levelname)s", '
        '"logger": "%(name)s", "message": "%(message)s"}'
        if settings.log_format == "json"
        else "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def main() -> None:
    """Run the subscription lifecycle server."""
    # Load environment variables from .env file
    load_dotenv()

    setup_logging()

    settings = get_settings()
    logger = logging.getLogger(__name__)

    # Initialize OpenTelemetry tracing (must be done before creating app)
    from saas_lifecycle.telemetry import setup_telemetry, shutdown_telemetry

    setup_telemetry()

    logger.info(
        "Starting SaaS subscription lifecycle service",
        extra={
            "offer_id": settings.offer_id,
            "host": settings.host,
            "port": settings.port,
            "test_mode": settings.test_mode_enabled,
            "event_publisher": settings.event_publisher,
            "otel_enabled": settings.otel_enabled,
        },
    )

    # Import app here to ensure environment is configured
    from saas_lifecycle.api.app import create_app

    app = create_app()

    try:
        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )
    finally:
        shutdown_telemetry()


if __name__ == "__main__":
    main()
