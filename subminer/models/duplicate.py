"""Data models for duplicate detection and merging."""

from dataclasses import dataclass, field


@dataclass
class DuplicateCardInfo:
    """Summary of one side of a duplicate pair, shown to the user."""

    note_id: int
    expression: str
    sentence_preview: str
    has_audio: bool
    has_image: bool
    is_original: bool


@dataclass
class FieldGroupingChoice:
    """Decision on how to merge a duplicate pair."""

    keep_note_id: int = 0
    delete_note_id: int = 0
    delete_duplicate: bool = True
    cancelled: bool = False

    @classmethod
    def cancel(cls) -> "FieldGroupingChoice":
        """Create a choice that aborts the merge."""
        return cls(cancelled=True)


@dataclass
class MergePreview:
    """Field values of the kept note before and after a merge."""

    keep_note_id: int
    delete_note_id: int
    before: dict[str, str] = field(default_factory=dict)
    after: dict[str, str] = field(default_factory=dict)

    @property
    def changed_fields(self) -> dict[str, str]:
        """Fields whose merged value differs from the current one."""
        return {
            name: value for name, value in self.after.items() if self.before.get(name) != value
        }

    @property
    def has_changes(self) -> bool:
        """Check if committing would write anything."""
        return bool(self.changed_fields)

    def __str__(self) -> str:
        return (
            f"MergePreview(keep={self.keep_note_id}, delete={self.delete_note_id}, "
            f"changed={sorted(self.changed_fields)})"
        )
