"""Presenter protocol for user-visible status messages."""

from typing import Protocol


class PresenterProtocol(Protocol):
    """Interface for showing status to the user (mpv OSD, console, notifications).

    The integration reports everything the user should see through this
    protocol, so the same logic works with different front ends.
    """

    def show_info(self, message: str) -> None:
        """Display an informational message.

        Args:
            message: The informational message to display
        """
        ...

    def show_success(self, message: str) -> None:
        """Display a success message.

        Args:
            message: The success message to display
        """
        ...

    def show_warning(self, message: str) -> None:
        """Display a warning message.

        Args:
            message: The warning message to display
        """
        ...

    def show_error(self, message: str) -> None:
        """Display an error message.

        Args:
            message: The error message to display
        """
        ...
