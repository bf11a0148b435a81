from __future__ import annotations

from pathlib import Path

from clip_forge.domain.errors import InvalidRequest, RenderCancelled, RenderError
from clip_forge.domain.models import RenderedVideo
from clip_forge.domain.protocols import ProgressCallback
from clip_forge.domain.timestamps import parse_time_marker
from clip_forge.infrastructure.render.ffmpeg_builder import FFmpegCommandBuilder
from clip_forge.utils.config import RenderConfig, ToolsConfig
from clip_forge.utils.media import CommandCancelled, CommandError, probe_duration_or_zero, run_streaming

_OUT_TIME_KEY = "out_time="


def render_percent(elapsed: float, total: float, cap: float = 90.0, mode: str = "clamp") -> float:
    """Map elapsed output seconds to a render-phase percent in [0, cap].

    ``clamp`` reports the true share of the work capped at ``cap``; ``scale``
    stretches the whole render across [0, cap].
    """
    if total <= 0 or elapsed <= 0:
        return 0.0
    ratio = elapsed / total
    if mode == "scale":
        return min(cap, cap * ratio)
    return min(cap, 100.0 * ratio)


class BumperRenderer:
    def __init__(
        self,
        config: RenderConfig,
        tools: ToolsConfig,
        command_builder: FFmpegCommandBuilder,
        logger,
    ) -> None:
        self.config = config
        self.tools = tools
        self.command_builder = command_builder
        self.logger = logger

    def render(
        self,
        intro_path: Path,
        source_path: Path,
        ending_path: Path,
        start_time: float,
        duration: float,
        output_path: Path,
        on_progress: ProgressCallback | None = None,
        cancel_event=None,
    ) -> RenderedVideo:
        if not source_path.exists():
            raise InvalidRequest(f"Source video not found: {source_path}")
        if duration <= 0:
            raise InvalidRequest(f"Clip duration must be positive: {duration}")

        try:
            intro_sec = probe_duration_or_zero(intro_path, self.tools, self.logger, cancel_event=cancel_event)
            ending_sec = probe_duration_or_zero(ending_path, self.tools, self.logger, cancel_event=cancel_event)
        except CommandCancelled as exc:
            raise RenderCancelled() from exc
        total_expected = intro_sec + duration + ending_sec

        output_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.command_builder.build(
            intro_path=intro_path,
            source_path=source_path,
            ending_path=ending_path,
            start_time=start_time,
            duration=duration,
            output_path=output_path,
        )
        self.logger.info(
            "render.started",
            output=str(output_path),
            start_time=start_time,
            duration=duration,
            total_expected=total_expected,
        )
        if on_progress:
            on_progress(0.0, "Merging intro, clip and ending...")

        def _on_line(line: str) -> None:
            elapsed = self._parse_progress_line(line)
            if elapsed is None or not on_progress:
                return
            percent = render_percent(
                elapsed,
                total_expected,
                cap=self.config.progress_cap,
                mode=self.config.progress_mode,
            )
            on_progress(percent, f"Rendering video: {round(percent)}%")

        try:
            run_streaming(cmd, _on_line, cancel_event=cancel_event)
        except CommandCancelled as exc:
            self.logger.info("render.cancelled", output=str(output_path))
            output_path.unlink(missing_ok=True)
            raise RenderCancelled() from exc
        except CommandError as exc:
            self.logger.warning("render.failed", output=str(output_path), returncode=exc.returncode)
            raise RenderError(f"ffmpeg failed to render {output_path.name}", diagnostic=exc.stderr.strip()) from exc

        self.logger.info("render.completed", output=str(output_path))
        return RenderedVideo(video_path=output_path, total_expected_sec=total_expected)

    def _parse_progress_line(self, line: str) -> float | None:
        if not line.startswith(_OUT_TIME_KEY):
            return None
        return parse_time_marker(line[len(_OUT_TIME_KEY):])
