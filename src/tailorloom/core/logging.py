"""structlog configuration shared by the API and scripts."""

from __future__ import annotations

import logging

import structlog

from tailorloom.core.config import AppSettings


def configure_logging(settings: AppSettings | None = None) -> None:
    """Configure stdlib logging and structlog from application settings."""
    if settings is None:
        settings = AppSettings()

    logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer() if settings.environment == "prod"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
