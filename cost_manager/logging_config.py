"""
Structured Logging Setup

Every module logs through structlog with snake_case event names and
key/value context, e.g. ``logger.info("cost_inserted", cost_id=3)``.

configure_logging() is idempotent. create_cost_manager() calls it with the
configured level; call it again to change the level or renderer.
"""

import logging
from typing import Optional

import structlog

from cost_manager.config import get_settings


def configure_logging(
    level: Optional[str] = None,
    json_logs: Optional[bool] = None,
) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        level: Log level name. Defaults to AppSettings.log_level.
        json_logs: JSON renderer when True, console renderer otherwise.
                   Defaults to AppSettings.json_logs.
    """
    app_settings = get_settings().app
    level = (level or app_settings.log_level).upper()
    if json_logs is None:
        json_logs = app_settings.json_logs

    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger("cost_manager").setLevel(level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
