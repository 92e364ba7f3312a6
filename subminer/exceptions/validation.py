"""Configuration-related exceptions."""

from .base import SubMinerException


class ConfigurationError(SubMinerException):
    """Raised when a required setting is missing or invalid."""

    pass
