"""Shared utilities: logging, event fan-out and git helpers."""

from ._events import Callback, Subscribers
from ._logging import LogFormatType, create_logger, get_logger

__all__ = [
    "Callback",
    "LogFormatType",
    "Subscribers",
    "create_logger",
    "get_logger",
]
