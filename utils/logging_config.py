"""Root logger setup for command-line entry points."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logger(level: str | int | None = None) -> None:
    """Configure root logging once; LOG_LEVEL overrides the INFO default."""
    resolved = level or os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt="%H:%M:%S")
