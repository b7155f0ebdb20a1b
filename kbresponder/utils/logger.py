"""Logging setup"""

import logging
import sys

from kbresponder.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = None) -> None:
    """Configure the root logger for the application"""
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        stream=sys.stdout,
        force=True
    )

    # Third-party clients are chatty at INFO
    for name in ("httpx", "openai", "sqlalchemy.engine"):
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
