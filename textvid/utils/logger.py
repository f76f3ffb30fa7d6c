"""Logging configuration helpers shared by every textvid module."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DEFAULT_LEVEL = logging.INFO
_LOGGING_CONFIGURED = False
_INSTALLED_HANDLERS: list[logging.Handler] = []


def _resolve_level(level: int | str | None) -> int:
    """Resolves explicit level, then LOG_LEVEL, then INFO."""
    candidate: int | str | None = level
    if candidate is None:
        candidate = os.getenv("LOG_LEVEL")
    if candidate is None:
        return _DEFAULT_LEVEL
    if isinstance(candidate, int):
        return candidate
    resolved = logging.getLevelName(candidate.strip().upper())
    if isinstance(resolved, int):
        return resolved
    return _DEFAULT_LEVEL


def configure_logging(level: int | str | None = None) -> int:
    """Configures root logging once and returns the applied level.

    Args:
        level: Explicit level name or number. When omitted, ``LOG_LEVEL`` is
            read from the environment and INFO is used as the last resort.

    Returns:
        The numeric level applied to the root logger.
    """
    global _LOGGING_CONFIGURED
    resolved: int = _resolve_level(level)
    root_logger = logging.getLogger()
    if not _LOGGING_CONFIGURED and not root_logger.handlers:
        logging.basicConfig(format=LOG_FORMAT, level=resolved)
        _INSTALLED_HANDLERS[:] = root_logger.handlers
    for handler in _INSTALLED_HANDLERS:
        handler.setLevel(resolved)
    root_logger.setLevel(resolved)
    _LOGGING_CONFIGURED = True
    return resolved


def get_logger(name: str) -> logging.Logger:
    """Returns a module logger, configuring logging on first use."""
    if not _LOGGING_CONFIGURED:
        configure_logging()
    return logging.getLogger(name)
