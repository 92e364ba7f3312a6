"""Media generation exceptions."""

from .base import SubMinerException


class MediaGenerationError(SubMinerException):
    """Raised when audio or image generation fails."""

    pass


class FFmpegError(MediaGenerationError):
    """Raised when ffmpeg is missing or cannot be started."""

    pass
