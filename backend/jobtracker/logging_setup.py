import logging
import sys
from typing import Optional

LOGGER_NAME = "jobtracker"


class SimpleFormatter(logging.Formatter):
    """Human-readable formatter for local use"""

    def __init__(self):
        super().__init__(
            '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
            datefmt='%H:%M:%S'
        )


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach a stream handler to the jobtracker logger.
    Level defaults to settings.log_level.

    Calling it again only changes the level; handlers are not duplicated.
    """
    if level is None:
        from .settings import settings
        level = settings.log_level
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not any(getattr(h, "_jobtracker", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(SimpleFormatter())
        handler._jobtracker = True
        logger.addHandler(handler)

    return logger
