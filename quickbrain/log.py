from __future__ import annotations
import logging
import os
from typing import Optional

from rich.logging import RichHandler

_CONFIGURED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Route the quickbrain loggers through rich. Level from QUICKBRAIN_LOG_LEVEL."""
    global _CONFIGURED
    level = (level or os.getenv("QUICKBRAIN_LOG_LEVEL") or "WARNING").upper()
    logger = logging.getLogger("quickbrain")
    logger.setLevel(level)
    if not _CONFIGURED:
        handler = RichHandler(show_path=False, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        _CONFIGURED = True
