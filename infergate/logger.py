"""
Logging setup based on loguru.

Level policy:
- DEBUG: payloads, shape matching, retry bookkeeping
- INFO: submissions accepted and finished
- WARNING: catalog fallbacks, classified upstream failures
- ERROR: unexpected faults

Usage:
    from infergate.logger import logger

    logger.info("[{}] dispatched to {}", record_id, endpoint)
"""

from __future__ import annotations

import logging
import os
import sys

from loguru import logger

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{message}</cyan>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

logger.remove()
logger.add(sys.stderr, format=CONSOLE_FORMAT, level=LOG_LEVEL, colorize=True)

if LOG_FILE:
    logger.add(
        LOG_FILE,
        format=FILE_FORMAT,
        level="DEBUG",
        rotation="100 MB",
        retention="30 days",
        enqueue=False,
        encoding="utf-8",
        catch=True,
    )

logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

__all__ = ["logger"]
