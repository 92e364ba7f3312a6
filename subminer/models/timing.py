"""Data models for subtitle timing."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SubtitleTiming:
    """Start and end time of a subtitle line, in seconds."""

    start_time: float
    end_time: float

    @property
    def duration(self) -> float:
        """Length of the line in seconds."""
        return self.end_time - self.start_time


@dataclass
class TimingEntry:
    """Timing recorded for a normalized subtitle text."""

    start_time: float
    end_time: float
    timestamp: float  # Clock time when the entry was recorded


@dataclass
class SubtitleHistoryEntry:
    """A subtitle line in the recent history, oldest first."""

    display_text: str
    timing_key: str
    start_time: float
    end_time: float
    timestamp: float
