import logging
import sys

from salesbot.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging() -> None:
    """Configure the root logger once. Safe to call repeatedly."""
    global _configured
    if _configured:
        return

    level = getattr(logging, str(settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.captureWarnings(True)
    # httpx logs every request at INFO, which would leak webhook URLs.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("salesbot").setLevel(level)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
