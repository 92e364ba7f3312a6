"""Data models for grouped field values (Kiku field grouping)."""

from dataclasses import dataclass, field
from enum import Enum


class FieldRole(Enum):
    """How a grouped field's fragments are encoded."""

    TEXT = "text"
    AUDIO = "audio"
    IMAGE = "image"

    @property
    def is_media(self) -> bool:
        """Media roles keep a single reference per group."""
        return self is not FieldRole.TEXT


class MalformedReason(Enum):
    """Why a grouped fragment was rejected."""

    MISSING_ID = "missing group id"
    NON_NUMERIC_ID = "non-numeric group id"
    NON_POSITIVE_ID = "non-positive group id"


@dataclass(frozen=True)
class GroupedFragment:
    """A piece of field content attributed to the note that contributed it."""

    group_id: int
    content: str


@dataclass(frozen=True)
class MalformedFragment:
    """A grouped tag that could not be attributed to a note."""

    reason: MalformedReason
    raw: str


@dataclass
class ParsedField:
    """Result of parsing a grouped field value."""

    fragments: list[GroupedFragment] = field(default_factory=list)
    malformed: list[MalformedFragment] = field(default_factory=list)

    @property
    def group_ids(self) -> list[int]:
        """Distinct group ids in order of first appearance."""
        seen: list[int] = []
        for fragment in self.fragments:
            if fragment.group_id not in seen:
                seen.append(fragment.group_id)
        return seen
