"""Custom exceptions for SubMiner."""

from .anki import AnkiConnectApiError, AnkiConnectionError
from .base import SubMinerException
from .grouping import MalformedGroupedFieldError
from .media import FFmpegError, MediaGenerationError
from .validation import ConfigurationError

__all__ = [
    "SubMinerException",
    "AnkiConnectionError",
    "AnkiConnectApiError",
    "MediaGenerationError",
    "FFmpegError",
    "MalformedGroupedFieldError",
    "ConfigurationError",
]
