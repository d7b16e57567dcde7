"""Pluggable log sink used for every diagnostic the library produces."""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger("coindaemon")

# (severity, message) -> None
LogSink = Callable[[str, str], None]

SEVERITY_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def default_log_sink(severity: str, message: str) -> None:
    """Route a sink message to the ``coindaemon`` stdlib logger."""
    logger.log(SEVERITY_LEVELS.get(severity, logging.INFO), message)


def configure_logging(level: str = "info") -> None:
    """Configure root logging for command-line use."""
    logging.basicConfig(
        level=SEVERITY_LEVELS.get(level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
