"""Logging setup for the planning engine."""

import logging
import sys
from typing import Optional

from budget_planner.config import Settings, get_global_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Attach a stream handler to the ``budget_planner`` logger.

    Args:
        settings: Settings to read the log level from (global settings if omitted)

    Returns:
        The configured package logger
    """
    settings = settings or get_global_settings()
    logger = logging.getLogger("budget_planner")
    logger.setLevel(settings.log_level)

    if not any(getattr(h, "_budget_planner", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._budget_planner = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger
