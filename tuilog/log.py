"""Console logging setup for the command-line interface."""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV_VAR = "TUILOG_LOG_LEVEL"


def configure_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Route library logging through rich on stderr.

    --verbose forces DEBUG; otherwise TUILOG_LOG_LEVEL decides (default WARNING).
    """
    level = "DEBUG" if verbose else os.getenv(LOG_LEVEL_ENV_VAR, "WARNING").upper()
    if level not in logging.getLevelNamesMapping():
        level = "WARNING"
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h, RichHandler)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
