"""Protocol for the manual duplicate-merge confirmation."""

from typing import Protocol

from subminer.models import DuplicateCardInfo, FieldGroupingChoice


class FieldGroupingCallback(Protocol):
    """Asks the user which of two duplicate notes to keep.

    Implementations return FieldGroupingChoice.cancel() when the user backs
    out; no merge happens in that case.
    """

    def __call__(
        self, original: DuplicateCardInfo, duplicate: DuplicateCardInfo
    ) -> FieldGroupingChoice: ...
