"""Logging setup for applications embedding the pricing engine."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str = "marketprice", level: int | str = logging.INFO) -> logging.Logger:
    """Attach a console handler to ``name`` (once) and set its level.

    Args:
        name: Logger name (usually the package name).
        level: Logging level, as an int or a name such as ``"DEBUG"``.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if any(getattr(h, "_marketprice_console", False) for h in logger.handlers):
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._marketprice_console = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger
