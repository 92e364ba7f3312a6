"""Base exception classes for SubMiner."""


class SubMinerException(Exception):
    """Base exception for all SubMiner errors.

    All custom exceptions in the subminer package should inherit
    from this base class for consistent error handling.
    """

    pass
