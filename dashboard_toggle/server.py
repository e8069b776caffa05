from __future__ import annotations

import logging
import os
import sys

import structlog
import uvicorn

from dashboard_toggle.app import create_app
from dashboard_toggle.errors import SettingsError
from dashboard_toggle.settings import load_settings


def configure_logging(level_name: str) -> None:
    level = getattr(logging, str(level_name or "INFO").strip().upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def main() -> None:
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    logger = structlog.get_logger(__name__)

    try:
        settings = load_settings().require_complete()
    except SettingsError as exc:
        logger.error("Refusing to start", error=exc.message)
        sys.exit(2)

    host = os.getenv("DASHBOARD_TOGGLE_HOST", "0.0.0.0").strip() or "0.0.0.0"
    port = int(os.getenv("DASHBOARD_TOGGLE_PORT", "8080"))
    logger.info("Starting dashboard toggle bot", host=host, port=port, dashboard_url=settings.dashboard_url)
    uvicorn.run(create_app(settings), host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
