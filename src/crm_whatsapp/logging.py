"""
Logging setup for crm_whatsapp processes (CLI, workers embedding the package).
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def setup_logging(level: str | int | None = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name or number. Defaults to LOG_LEVEL from settings.
    """
    if level is None:
        from crm_whatsapp.settings import get_settings

        level = get_settings().LOG_LEVEL

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request at INFO, including URLs
    logging.getLogger("httpx").setLevel(logging.WARNING)
