# Path: config/log.py
# Purpose: Configure application logging.
# Layer: config.
# Details: All modules log through children of the "covermatch" logger; scripts call setup_logging once.

from __future__ import annotations

import logging

LOGGER_NAME = "covermatch"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the application logger or one of its children."""

    if not name:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a console handler to the application logger if none is configured yet."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"))
        logger.addHandler(handler)
    return logger
