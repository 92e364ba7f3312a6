"""Anki and AnkiConnect related exceptions."""

from .base import SubMinerException

NOTE_NOT_FOUND_MARKER = "note was not found"


class AnkiConnectionError(SubMinerException):
    """Raised when AnkiConnect cannot be reached after all retries."""

    pass


class AnkiConnectApiError(SubMinerException):
    """Raised when AnkiConnect answers with an application-level error.

    These are never retried: the request reached Anki and Anki refused it.
    """

    def __init__(self, message: str, action: str = ""):
        super().__init__(message)
        self.action = action

    @property
    def is_note_not_found(self) -> bool:
        """Whether the error reports a note that no longer exists."""
        return NOTE_NOT_FOUND_MARKER in str(self).lower()
