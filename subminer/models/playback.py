"""Data model for the video player's current state."""

from dataclasses import dataclass

from .timing import SubtitleTiming


@dataclass
class PlaybackState:
    """What the player is showing right now.

    Updated from the live subtitle source; read by card enrichment.
    """

    video_path: str | None = None
    subtitle_text: str = ""
    subtitle_start: float | None = None
    subtitle_end: float | None = None
    time_pos: float = 0.0
    audio_stream_index: int | None = None

    @property
    def has_video(self) -> bool:
        """Check if a video is loaded."""
        return bool(self.video_path)

    def current_timing(self, fallback_duration: float) -> SubtitleTiming:
        """Timing of the current subtitle, or a window around the playback position.

        Args:
            fallback_duration: Window length used when no subtitle timing is known

        Returns:
            SubtitleTiming for media generation
        """
        if self.subtitle_start is not None and self.subtitle_end is not None:
            return SubtitleTiming(self.subtitle_start, self.subtitle_end)
        half = fallback_duration / 2
        return SubtitleTiming(self.time_pos - half, self.time_pos + half)
