"""Logging setup helpers for shuffle-fix."""

from __future__ import annotations

import logging

LOGGER_NAME = "shuffle_fix"


def configure_logging(debug: bool = False) -> None:
    """Route shuffle-fix records to stderr; ``debug`` also shows probe and patch detail."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger(LOGGER_NAME).setLevel(level)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger, or a child of it for a ``shuffle_fix.*`` name."""
    return logging.getLogger(name or LOGGER_NAME)
