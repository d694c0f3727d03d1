"""Rich-backed logging for the build and the command line."""

from __future__ import annotations

import logging
import os
from typing import Final

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["configure_logging", "console"]

LOG_LEVEL_ENV: Final[str] = "PLFA_SITE_LOG_LEVEL"

# Libraries that log at INFO on every document or filesystem event.
_QUIET_LOGGERS: Final[tuple[str, ...]] = ("markdown_it", "watchdog")

console = Console(stderr=True)


class SiteLogHandler(RichHandler):
    """The single handler this package installs on the root logger."""

    def __init__(self) -> None:
        super().__init__(console=console, rich_tracebacks=True, show_path=False, markup=False)
        self.setFormatter(logging.Formatter("%(message)s"))


def level_from(name: str | None) -> int:
    """Map a level name, or ``$PLFA_SITE_LOG_LEVEL``, to a logging level.

    Unknown names fall back to INFO.
    """
    chosen = name or os.environ.get(LOG_LEVEL_ENV) or "INFO"
    level = logging.getLevelName(chosen.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level_name: str | None = None) -> None:
    """Install ``SiteLogHandler`` on first use and set the root level.

    Calling this again only changes the level.
    """
    root = logging.getLogger()
    if not any(isinstance(handler, SiteLogHandler) for handler in root.handlers):
        root.handlers.clear()
        root.addHandler(SiteLogHandler())
    root.setLevel(level_from(level_name))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.captureWarnings(True)
