"""
Logging setup

Everything this service reports about Mailchimp syncs goes to one named
channel. It is written to stderr like any other loguru message and also to
its own file.
"""
import sys
from typing import Optional

from loguru import logger

from config import LOG_CHANNEL, settings


log = logger.bind(channel=LOG_CHANNEL)


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None):
    """Configure stderr and the sync channel file sink"""
    level = level or settings.log_level
    log_file = log_file or settings.log_file

    logger.remove()
    logger.add(sys.stderr, level=level)
    if log_file:
        logger.add(
            log_file,
            level="INFO",
            rotation="10 MB",
            retention=5,
            filter=lambda record: record["extra"].get("channel") == LOG_CHANNEL,
        )
