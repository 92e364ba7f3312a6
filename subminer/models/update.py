"""Data model for pending note field updates."""

from dataclasses import dataclass, field


@dataclass
class FieldUpdate:
    """Field values to write to a note, plus soft media failures."""

    fields: dict[str, str] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def has_fields(self) -> bool:
        """Check if there is anything to write."""
        return bool(self.fields)

    @property
    def error_suffix(self) -> str | None:
        """User-facing summary of failed media, e.g. "audio, image failed"."""
        if not self.errors:
            return None
        return f"{', '.join(self.errors)} failed"
