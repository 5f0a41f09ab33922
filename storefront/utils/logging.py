# =============================================
# File: storefront/utils/logging.py
# Purpose: Logging configuration (loguru file sink)
# =============================================
import os

from loguru import logger

_LOG_FILE = os.getenv("LOG_FILE", "logs/storefront.log")
_sink_id = None


def configure_logging() -> None:
    """Attach the rotating file sink once; LOG_FILE="" disables it."""
    global _sink_id
    if _sink_id is not None or not _LOG_FILE:
        return
    _sink_id = logger.add(_LOG_FILE, rotation="10 MB", level=os.getenv("LOG_LEVEL", "INFO").upper())
