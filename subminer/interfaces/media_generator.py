"""Protocol for audio and image generation backends."""

from typing import Protocol


class MediaGeneratorProtocol(Protocol):
    """Interface for cutting media out of the video being watched.

    Every method returns the encoded file contents. Failures raise
    (MediaGenerationError or any other exception); callers treat them as
    soft and simply leave the affected field out of the update.
    """

    def generate_audio(
        self,
        video_path: str,
        start_time: float,
        end_time: float,
        padding: float = 0.5,
        audio_stream_index: int | None = None,
    ) -> bytes:
        """Cut an mp3 clip covering start_time..end_time plus padding."""
        ...

    def generate_screenshot(
        self,
        video_path: str,
        timestamp: float,
        image_format: str = "jpg",
        quality: int = 92,
        max_width: int = 0,
        max_height: int = 0,
    ) -> bytes:
        """Grab a single frame at timestamp."""
        ...

    def generate_animated_image(
        self,
        video_path: str,
        start_time: float,
        end_time: float,
        padding: float = 0.5,
        fps: int = 10,
        max_width: int = 640,
        max_height: int = 0,
        crf: int = 35,
    ) -> bytes:
        """Encode an animated AVIF covering start_time..end_time plus padding."""
        ...
