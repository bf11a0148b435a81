from __future__ import annotations

from pathlib import Path

from clip_forge.domain.errors import ExtractError, OperationCancelled, ProbeError
from clip_forge.utils.config import ThumbnailConfig, ToolsConfig
from clip_forge.utils.media import CommandCancelled, CommandError, probe_duration, run_command

PREVIEW_JPEG_QUALITY = 3


class FrameExtractor:
    def __init__(self, config: ThumbnailConfig, tools: ToolsConfig, logger) -> None:
        self.config = config
        self.tools = tools
        self.logger = logger

    def extract_frame(
        self,
        video_path: Path,
        timestamp: float,
        output_path: Path,
        media_duration: float | None = None,
        cancel_event=None,
    ) -> Path:
        """Write the frame at ``timestamp`` as a JPEG, replacing ``output_path``."""
        if timestamp < 0:
            raise ExtractError(f"Timestamp must be >= 0: {timestamp}")
        duration = media_duration
        if duration is None:
            try:
                duration = probe_duration(video_path, self.tools, cancel_event=cancel_event)
            except CommandCancelled as exc:
                raise OperationCancelled("thumbnails") from exc
            except ProbeError as exc:
                raise ExtractError(f"Cannot read {video_path}: {exc}") from exc
        if timestamp > duration:
            raise ExtractError(f"Timestamp {timestamp:.3f}s exceeds media duration {duration:.3f}s")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = [
            self.tools.ffmpeg_path,
            "-y",
            "-hide_banner",
            "-loglevel",
            "error",
            "-ss",
            f"{timestamp:.3f}",
            "-i",
            str(video_path),
            "-frames:v",
            "1",
            "-q:v",
            str(self.config.jpeg_quality),
            str(output_path),
        ]
        try:
            run_command(cmd, cancel_event=cancel_event)
        except CommandCancelled as exc:
            raise OperationCancelled("thumbnails") from exc
        except CommandError as exc:
            raise ExtractError(f"Frame capture failed at {timestamp:.3f}s: {exc.stderr.strip() or exc}") from exc

        if not output_path.exists() or output_path.stat().st_size == 0:
            raise ExtractError(f"No frame written at {timestamp:.3f}s for {video_path}")
        self.logger.info("thumbnail.extracted", timestamp=round(timestamp, 3), output=str(output_path))
        return output_path

    def preview_frame(self, video_path: Path, timestamp: float, cancel_event=None) -> bytes:
        """Low-resolution JPEG bytes for scrubbing previews."""
        if not video_path.exists():
            raise ExtractError(f"Video not found: {video_path}")
        cmd = [
            self.tools.ffmpeg_path,
            "-hide_banner",
            "-loglevel",
            "error",
            "-ss",
            f"{max(0.0, timestamp):.3f}",
            "-i",
            str(video_path),
            "-frames:v",
            "1",
            "-vf",
            f"scale={self.config.preview_width}:-1",
            "-q:v",
            str(PREVIEW_JPEG_QUALITY),
            "-c:v",
            "mjpeg",
            "-f",
            "mjpeg",
            "pipe:1",
        ]
        try:
            data = run_command(cmd, cancel_event=cancel_event, text=False)
        except CommandCancelled as exc:
            raise OperationCancelled("preview") from exc
        except CommandError as exc:
            raise ExtractError(f"Preview capture failed at {timestamp:.3f}s: {exc.stderr.strip() or exc}") from exc
        if not data:
            raise ExtractError(f"Preview capture returned no data at {timestamp:.3f}s")
        return data
