"""
Logging setup for PortfolioQ.

One stream handler hangs off the ``portfolioq`` package logger, so uvicorn's
and the SDKs' own handlers are left alone. Records carry the thread name:
analysis runs on a worker pool and interleaved subjects are otherwise hard
to tell apart.
"""

from __future__ import annotations

import logging
import os
from typing import Final

PACKAGE_LOGGER: Final[str] = "portfolioq"
_FORMAT: Final[str] = "%(asctime)s [%(threadName)s] %(name)s %(levelname)s: %(message)s"

# Chatty at INFO while uploading evidence
_QUIET_LOGGERS: Final[tuple[str, ...]] = ("google.auth", "urllib3", "httpx")

_configured: bool = False


def _resolve_level() -> int:
    level_name = os.getenv("PORTFOLIOQ_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO


def _configure() -> None:
    global _configured

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(_resolve_level())
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    package_logger.addHandler(handler)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``portfolioq`` hierarchy, configuring it on first use."""
    _configure()
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
