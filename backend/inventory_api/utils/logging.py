import logging
import sys

from inventory_api.config import settings

LOG_FORMAT = "[INVENTORY] %(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Return a named logger with a stdout handler attached on first use.
    Level comes from settings.LOG_LEVEL.
    """
    log = logging.getLogger(f"inventory_api.{name}")
    log.setLevel(settings.LOG_LEVEL.upper())
    if not log.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(h)
    return log
