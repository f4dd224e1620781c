"""Logging bootstrap for applications using the SDK."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Union

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [triggerx] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: Union[int, str] = logging.INFO, stream: Optional[object] = None
) -> logging.Logger:
    """Attach a stream handler to the ``triggerx`` logger.

    Format: [YYYY-MM-DD HH:MM:SS] [LOG_LEVEL] [triggerx] Your message

    Safe to call more than once; the handler is only added the first time.
    """
    logger = logging.getLogger("triggerx")
    logger.setLevel(level)
    if not any(getattr(h, "_triggerx_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._triggerx_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
