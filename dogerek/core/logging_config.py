import logging

from dogerek.core.config import settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Page-level diagnostics for roster synchronization go here
SYNC_LOGGER_NAME = "hemis_sync"


def setup_logging() -> None:
    """Configure the root logger from LOG_LEVEL."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger(SYNC_LOGGER_NAME).setLevel(level)
