"""Service for cutting audio clips and images out of the video being watched."""

import logging
import shutil
import subprocess
import uuid
from pathlib import Path

from subminer.exceptions import FFmpegError, MediaGenerationError
from subminer.utils import ensure_directory

logger = logging.getLogger(__name__)

FFMPEG_TIMEOUT = 30  # Seconds
ANIMATION_TIMEOUT = 60
IMAGE_CODECS = {"jpg": "mjpeg", "png": "png", "webp": "webp"}


def jpeg_qscale(quality: int) -> int:
    """Map a 1-100 quality setting onto ffmpeg's mjpeg -q:v scale (2 best, 31 worst)."""
    quality = max(1, min(100, quality))
    return round(2 + (100 - quality) * (29 / 99))


def scale_filter(max_width: int, max_height: int) -> str | None:
    """Build an ffmpeg scale filter that keeps the aspect ratio.

    Args:
        max_width: Maximum width in pixels (0 = unbounded)
        max_height: Maximum height in pixels (0 = unbounded)

    Returns:
        Filter expression, or None when neither bound is set
    """
    if max_width > 0 and max_height > 0:
        return f"scale=w={max_width}:h={max_height}:force_original_aspect_ratio=decrease"
    if max_width > 0:
        return f"scale=w={max_width}:h=-2"
    if max_height > 0:
        return f"scale=w=-2:h={max_height}"
    return None


class MediaGenerator:
    """Generate media with ffmpeg.

    Output is written to a temporary file in the media temp folder, read back
    and deleted, so callers only ever handle bytes.
    """

    def __init__(self, temp_dir: Path):
        """Initialize the media generator.

        Args:
            temp_dir: Folder for temporary ffmpeg output
        """
        self.temp_dir = Path(temp_dir)
        ensure_directory(self.temp_dir)

    def _run_ffmpeg(self, args: list[str], output_path: Path, label: str, timeout: int) -> bytes:
        """Run ffmpeg and return the contents of its output file.

        Raises:
            FFmpegError: If ffmpeg is not installed
            MediaGenerationError: If ffmpeg fails or produces no output
        """
        cmd = ["ffmpeg", *args, "-y", str(output_path)]
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            proc = subprocess.run(cmd, capture_output=True, timeout=timeout)
        except FileNotFoundError as e:
            raise FFmpegError("FFmpeg not found. Install FFmpeg to enable media generation.") from e
        except subprocess.TimeoutExpired as e:
            raise MediaGenerationError(f"FFmpeg {label} timed out") from e
        except (subprocess.SubprocessError, OSError) as e:
            raise MediaGenerationError(f"FFmpeg {label} failed: {e}") from e

        try:
            if proc.returncode != 0:
                stderr = proc.stderr.decode(errors="replace").strip()
                raise MediaGenerationError(
                    f"FFmpeg {label} failed: exit code {proc.returncode}: {stderr}"
                )
            if not output_path.exists():
                raise MediaGenerationError(f"FFmpeg {label} produced no output")
            return output_path.read_bytes()
        finally:
            output_path.unlink(missing_ok=True)

    def _output_path(self, prefix: str, ext: str) -> Path:
        return self.temp_dir / f"{prefix}_{uuid.uuid4().hex}.{ext}"

    def generate_audio(
        self,
        video_path: str,
        start_time: float,
        end_time: float,
        padding: float = 0.5,
        audio_stream_index: int | None = None,
    ) -> bytes:
        """Cut an mp3 clip covering start_time..end_time plus padding.

        Args:
            video_path: Path or URL of the video
            start_time: Clip start in seconds
            end_time: Clip end in seconds
            padding: Seconds added on both sides
            audio_stream_index: Absolute stream index to use (player's current track)

        Returns:
            mp3 file contents
        """
        start = max(0.0, start_time - padding)
        duration = end_time - start_time + 2 * padding

        args = ["-ss", str(start), "-t", str(duration), "-i", str(video_path)]
        if audio_stream_index is not None and audio_stream_index >= 0:
            args.extend(["-map", f"0:{audio_stream_index}"])
        args.extend(["-vn", "-acodec", "libmp3lame", "-q:a", "2", "-ar", "44100"])

        return self._run_ffmpeg(
            args, self._output_path("audio", "mp3"), "audio generation", FFMPEG_TIMEOUT
        )

    def generate_screenshot(
        self,
        video_path: str,
        timestamp: float,
        image_format: str = "jpg",
        quality: int = 92,
        max_width: int = 0,
        max_height: int = 0,
    ) -> bytes:
        """Grab a single frame.

        Args:
            video_path: Path or URL of the video
            timestamp: Frame position in seconds
            image_format: "jpg", "png" or "webp"
            quality: 1-100 (ignored for png)
            max_width: Maximum width (0 = source size)
            max_height: Maximum height (0 = source size)

        Returns:
            Encoded image contents
        """
        if image_format not in IMAGE_CODECS:
            raise MediaGenerationError(f"Unsupported image format: {image_format}")

        args = ["-ss", str(max(0.0, timestamp)), "-i", str(video_path), "-vframes", "1"]
        vf = scale_filter(max_width, max_height)
        if vf:
            args.extend(["-vf", vf])
        args.extend(["-c:v", IMAGE_CODECS[image_format]])

        if image_format == "jpg":
            args.extend(["-q:v", str(jpeg_qscale(quality))])
        elif image_format == "webp":
            args.extend(["-q:v", str(max(1, min(100, quality)))])

        return self._run_ffmpeg(
            args,
            self._output_path("screenshot", image_format),
            "screenshot generation",
            FFMPEG_TIMEOUT,
        )

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
        """Encode the clip as an animated AVIF."""
        start = max(0.0, start_time - padding)
        duration = end_time - start_time + 2 * padding

        vf_parts = [f"fps={max(1, min(60, fps))}"]
        scale = scale_filter(max_width, max_height)
        if scale:
            vf_parts.append(scale)

        args = [
            "-ss",
            str(start),
            "-t",
            str(duration),
            "-i",
            str(video_path),
            "-vf",
            ",".join(vf_parts),
            "-c:v",
            "libaom-av1",
            "-crf",
            str(max(0, min(63, crf))),
            "-b:v",
            "0",
            "-cpu-used",
            "8",
        ]
        return self._run_ffmpeg(
            args, self._output_path("animation", "avif"), "animation generation", ANIMATION_TIMEOUT
        )

    def cleanup(self) -> None:
        """Remove the temporary folder."""
        try:
            shutil.rmtree(self.temp_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to clean up media temp folder {self.temp_dir}: {e}")
