"""Logging setup shared by the console and HTTP front ends."""

from __future__ import annotations

import logging
from typing import Union

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Attach a single stream handler to the package logger.

    Repeated calls only adjust the level.
    """
    global _configured
    package_logger = logging.getLogger("finance_core")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved
    package_logger.setLevel(level)
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    package_logger.addHandler(handler)
    _configured = True
