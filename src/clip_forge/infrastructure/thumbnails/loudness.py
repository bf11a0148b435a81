from __future__ import annotations

import math
import re
from pathlib import Path

from clip_forge.utils.config import ToolsConfig
from clip_forge.utils.media import CommandCancelled, CommandError, run_command

# EBU R128 absolute gate; anything quieter counts as silence
SILENCE_FLOOR_LUFS = -70.0

_PTS_TIME_RE = re.compile(r"pts_time:(\S+)")
_MOMENTARY_RE = re.compile(r"lavfi\.r128\.M=(\S+)")


def parse_loudness_frames(text: str) -> list[tuple[float, float]]:
    """Parse ``ametadata=print`` output into (frame time, momentary LUFS) pairs."""
    frames: list[tuple[float, float]] = []
    current_time: float | None = None
    for line in (text or "").splitlines():
        pts_match = _PTS_TIME_RE.search(line)
        if pts_match:
            current_time = _to_float(pts_match.group(1))
            continue
        loud_match = _MOMENTARY_RE.search(line)
        if loud_match is None or current_time is None:
            continue
        value = _to_float(loud_match.group(1))
        if value is None or not math.isfinite(value):
            continue
        frames.append((current_time, value))
    return frames


def loudest_time(frames: list[tuple[float, float]]) -> float:
    best_time = 0.0
    best_value = SILENCE_FLOOR_LUFS
    for frame_time, value in frames:
        if value > best_value:
            best_time, best_value = frame_time, value
    return max(0.0, best_time)


class LoudnessPeakLocator:
    def __init__(self, tools: ToolsConfig, logger) -> None:
        self.tools = tools
        self.logger = logger

    def find_loudest_timestamp(self, video_path: Path, cancel_event=None) -> float:
        """Time of maximum momentary loudness, 0.0 on any failure."""
        cmd = [
            self.tools.ffmpeg_path,
            "-hide_banner",
            "-nostats",
            "-loglevel",
            "error",
            "-i",
            str(video_path),
            "-vn",
            "-af",
            "ebur128=metadata=1,ametadata=mode=print:key=lavfi.r128.M:file=-",
            "-f",
            "null",
            "-",
        ]
        try:
            output = run_command(cmd, cancel_event=cancel_event)
        except CommandCancelled:
            self.logger.info("loudness.cancelled", video=str(video_path))
            return 0.0
        except CommandError as exc:
            self.logger.warning("loudness.failed", video=str(video_path), error=str(exc).splitlines()[0])
            return 0.0

        peak = loudest_time(parse_loudness_frames(output))
        self.logger.info("loudness.peak", video=str(video_path), timestamp=round(peak, 3))
        return peak


def _to_float(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None
