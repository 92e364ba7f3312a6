"""Service for remembering when recent subtitle lines were shown."""

import logging
import threading
import time
from collections import deque
from collections.abc import Callable

from subminer.models import SubtitleHistoryEntry, SubtitleTiming, TimingEntry
from subminer.utils import normalize_subtitle_display, normalize_subtitle_key, similarity

logger = logging.getLogger(__name__)

TIMING_TTL = 5 * 60.0  # Seconds an entry stays available
CLEANUP_INTERVAL = 60.0
HISTORY_LIMIT = 200
FUZZY_MATCH_THRESHOLD = 0.7


class SubtitleTimingTracker:
    """Track subtitle timing so copied text can be mapped back to the video.

    Keeps two views of the same events: a map from normalized text to its
    latest timing (for lookups of clipboard text) and a bounded history of
    lines in the order they were shown (for mining several lines at once).
    Entries expire after five minutes.
    """

    def __init__(
        self,
        ttl: float = TIMING_TTL,
        cleanup_interval: float = CLEANUP_INTERVAL,
        history_limit: int = HISTORY_LIMIT,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the tracker.

        Args:
            ttl: Seconds before an entry is evicted
            cleanup_interval: Seconds between background eviction sweeps
            history_limit: Maximum number of history entries kept
            clock: Time source (seconds)
        """
        self.ttl = ttl
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._timings: dict[str, TimingEntry] = {}
        self._history: deque[SubtitleHistoryEntry] = deque(maxlen=history_limit)
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._cleanup_thread: threading.Thread | None = None

    def record_subtitle(self, text: str, start_time: float, end_time: float) -> None:
        """Record a subtitle line shown by the player.

        Args:
            text: Raw subtitle text (may contain ASS override tags and \\N)
            start_time: Line start in seconds
            end_time: Line end in seconds
        """
        key = normalize_subtitle_key(text)
        if not key:
            return

        now = self._clock()
        with self._lock:
            self._timings[key] = TimingEntry(start_time, end_time, now)

            last = self._history[-1] if self._history else None
            if last is not None and last.timing_key == key:
                # Players re-emit the current line (seeks, style changes)
                last.start_time = start_time
                last.end_time = end_time
                last.timestamp = now
                return

            self._history.append(
                SubtitleHistoryEntry(
                    display_text=normalize_subtitle_display(text),
                    timing_key=key,
                    start_time=start_time,
                    end_time=end_time,
                    timestamp=now,
                )
            )

    def find_timing(self, text: str) -> SubtitleTiming | None:
        """Look up the timing of a subtitle line.

        Tries an exact match on the normalized text first, then the most
        similar tracked line if it is similar enough (edited or partially
        retyped text).

        Args:
            text: Text to look up

        Returns:
            SubtitleTiming, or None if no tracked line matches
        """
        key = normalize_subtitle_key(text)
        if not key:
            return None

        with self._lock:
            entry = self._timings.get(key)
            if entry is None:
                entry = self._find_fuzzy_match(key)

        if entry is None:
            return None
        return SubtitleTiming(entry.start_time, entry.end_time)

    def _find_fuzzy_match(self, key: str) -> TimingEntry | None:
        """Find the tracked entry most similar to key (caller holds the lock)."""
        best_entry = None
        best_score = 0.0
        for tracked_key, entry in self._timings.items():
            score = similarity(key, tracked_key)
            if score > best_score:
                best_score = score
                best_entry = entry

        if best_entry is not None and best_score > FUZZY_MATCH_THRESHOLD:
            logger.debug(f"Fuzzy subtitle match with similarity {best_score:.2f}")
            return best_entry
        return None

    def get_recent_blocks(self, count: int) -> list[str]:
        """Get the display text of the most recent lines, oldest first.

        Args:
            count: Maximum number of lines to return

        Returns:
            List of subtitle texts with their original line breaks
        """
        if count <= 0:
            return []
        with self._lock:
            entries = list(self._history)[-count:]
        return [entry.display_text for entry in entries]

    def get_recent_entries(self, count: int) -> list[SubtitleHistoryEntry]:
        """Get copies of the most recent history entries, oldest first."""
        if count <= 0:
            return []
        with self._lock:
            entries = list(self._history)[-count:]
        return [
            SubtitleHistoryEntry(e.display_text, e.timing_key, e.start_time, e.end_time, e.timestamp)
            for e in entries
        ]

    def get_current_subtitle(self) -> str | None:
        """Get the display text of the newest line, if any."""
        with self._lock:
            if not self._history:
                return None
            return self._history[-1].display_text

    def __len__(self) -> int:
        with self._lock:
            return len(self._timings)

    def cleanup(self) -> int:
        """Evict entries older than the TTL.

        Returns:
            Number of timing entries removed
        """
        cutoff = self._clock() - self.ttl
        with self._lock:
            expired = [key for key, entry in self._timings.items() if entry.timestamp < cutoff]
            for key in expired:
                del self._timings[key]

            # History is chronological, so expired entries are all at the front
            while self._history and self._history[0].timestamp < cutoff:
                self._history.popleft()

        if expired:
            logger.debug(f"Evicted {len(expired)} expired subtitle timings")
        return len(expired)

    def start(self) -> None:
        """Start the background eviction sweep."""
        if self._cleanup_thread is not None and self._cleanup_thread.is_alive():
            return
        self._stop_event.clear()
        self._cleanup_thread = threading.Thread(
            target=self._cleanup_loop, name="subtitle-timing-cleanup", daemon=True
        )
        self._cleanup_thread.start()

    def stop(self) -> None:
        """Stop the background eviction sweep."""
        self._stop_event.set()
        if self._cleanup_thread is not None:
            self._cleanup_thread.join(timeout=1.0)
            self._cleanup_thread = None

    def destroy(self) -> None:
        """Stop the sweep and forget everything."""
        self.stop()
        with self._lock:
            self._timings.clear()
            self._history.clear()

    def _cleanup_loop(self) -> None:
        while not self._stop_event.wait(self.cleanup_interval):
            self.cleanup()
