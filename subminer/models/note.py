"""Data model for Anki notes as returned by AnkiConnect."""

from dataclasses import dataclass, field
from enum import Enum


class CardKind(Enum):
    """Card kinds of Lapis/Kiku note types, by their marker field."""

    SENTENCE = "IsSentenceCard"
    AUDIO = "IsAudioCard"
    WORD_AND_SENTENCE = "IsWordAndSentenceCard"


def resolve_field_name(field_names: list[str], preferred: str) -> str | None:
    """Find the actual name for a preferred field name.

    Exact matches win; otherwise the first case-insensitive match is used.
    """
    if not preferred:
        return None
    if preferred in field_names:
        return preferred
    lower = preferred.lower()
    for name in field_names:
        if name.lower() == lower:
            return name
    return None


@dataclass
class NoteInfo:
    """A note (flashcard record) in the Anki collection.

    Field values are the raw HTML strings stored by Anki. Field names keep
    the note type's capitalization; lookups by a preferred name fall back to
    a case-insensitive match.
    """

    note_id: int
    fields: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_anki(cls, data: dict) -> "NoteInfo":
        """Build a NoteInfo from one entry of a notesInfo response.

        Args:
            data: Dict with "noteId" and "fields" ({name: {"value": ...}})

        Returns:
            NoteInfo with plain string field values
        """
        raw_fields = data.get("fields") or {}
        values = {}
        for name, entry in raw_fields.items():
            if isinstance(entry, dict):
                values[name] = entry.get("value") or ""
            else:
                values[name] = str(entry or "")
        return cls(note_id=int(data.get("noteId", data.get("id", 0))), fields=values)

    @property
    def field_names(self) -> list[str]:
        """Names of all fields on the note, in note type order."""
        return list(self.fields.keys())

    def resolve_field_name(self, preferred: str) -> str | None:
        """Find the note's actual name for a preferred field name.

        Exact matches win; otherwise the first case-insensitive match is used.

        Args:
            preferred: Field name to look for

        Returns:
            The matching field name, or None if the note has no such field
        """
        return resolve_field_name(self.field_names, preferred)

    def get(self, preferred: str, default: str = "") -> str:
        """Get a field value by preferred name (case-insensitive fallback)."""
        name = self.resolve_field_name(preferred)
        if name is None:
            return default
        return self.fields[name]

    def has_value(self, preferred: str) -> bool:
        """Check if the field exists and holds non-blank text."""
        return bool(self.get(preferred).strip())

    def __str__(self) -> str:
        return f"NoteInfo({self.note_id}, fields={len(self.fields)})"
