"""Data models for SubMiner."""

from .duplicate import DuplicateCardInfo, FieldGroupingChoice, MergePreview
from .grouping import FieldRole, GroupedFragment, MalformedFragment, MalformedReason, ParsedField
from .note import CardKind, NoteInfo, resolve_field_name
from .playback import PlaybackState
from .timing import SubtitleHistoryEntry, SubtitleTiming, TimingEntry
from .update import FieldUpdate
from .validation import ValidationIssue, ValidationResult

__all__ = [
    "CardKind",
    "NoteInfo",
    "resolve_field_name",
    "SubtitleTiming",
    "TimingEntry",
    "SubtitleHistoryEntry",
    "FieldRole",
    "GroupedFragment",
    "MalformedFragment",
    "MalformedReason",
    "ParsedField",
    "DuplicateCardInfo",
    "FieldGroupingChoice",
    "MergePreview",
    "PlaybackState",
    "FieldUpdate",
    "ValidationIssue",
    "ValidationResult",
]
