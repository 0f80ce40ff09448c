"""Centralized logger factory."""
from __future__ import annotations

import logging
from typing import Final

_LOG_FORMAT: Final = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_NOISY_LOGGERS: Final = ("googleapiclient.discovery_cache", "httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    if logging.getLogger().handlers:
        logging.getLogger().setLevel(level)
        return
    logging.basicConfig(level=level, format=_LOG_FORMAT)
    # The bot token is part of the Telegram URL, keep request lines out of the log.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
