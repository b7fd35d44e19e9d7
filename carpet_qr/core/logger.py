#carpet_qr\core\logger.py
import logging

import coloredlogs

from carpet_qr.core.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str) -> logging.Logger:
    """Set up a named logger with colored console output."""
    logger = logging.getLogger(name)
    logger.setLevel(settings.LOG_LEVEL)
    coloredlogs.install(level=settings.LOG_LEVEL, logger=logger, fmt=LOG_FORMAT)
    return logger
