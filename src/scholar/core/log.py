from __future__ import annotations

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install a single stream handler on the `scholar` logger.
    Entry points call this once; library modules only create loggers.
    """
    global _configured
    level_name = (level or os.getenv("SCHOLAR_LOG_LEVEL", "INFO")).strip().upper()

    root = logging.getLogger("scholar")
    root.setLevel(getattr(logging, level_name, logging.INFO))
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.propagate = False
    _configured = True
