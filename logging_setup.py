import sys
from typing import Optional

from loguru import logger

from config import settings


def setup_logging(log_file: Optional[str] = None, level: Optional[str] = None) -> None:
    """Replace loguru's default sink with stderr plus an optional rotating file."""
    level = level or settings.log_level
    log_file = log_file or settings.log_file

    logger.remove()
    logger.add(sys.stderr, level=level)
    if log_file:
        logger.add(log_file, level=level, rotation="10 MB", retention=5, encoding="utf-8")
