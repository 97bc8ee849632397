"""Logging setup with per-component child loggers."""

from __future__ import annotations

import logging

ROOT_NAME = "pollbot"
_HANDLER_NAME = "pollbot-console"
_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def init_logging(level: int = logging.DEBUG) -> logging.Logger:
    """Configure the package logger for console output and return it."""
    root = logging.getLogger(ROOT_NAME)
    root.setLevel(level)
    if not any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
    return root


def component(name: str) -> logging.Logger:
    """Return the logger for a named component."""
    return logging.getLogger(f"{ROOT_NAME}.{name}")