from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class ToolsConfig:
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"


@dataclass(slots=True)
class PathsConfig:
    temp_dir: Path
    clips_dir: Path
    assets_dir: Path


@dataclass(slots=True)
class RenderConfig:
    video_width: int = 1920
    video_height: int = 1080
    fps: int = 30
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    audio_sample_rate: int = 48000
    preset: str = "superfast"
    crf: int = 23
    progress_cap: float = 90.0
    progress_mode: str = "clamp"


@dataclass(slots=True)
class ThumbnailConfig:
    mode: str = "rich"
    jpeg_quality: int = 2
    parallelism: int = 5
    preview_width: int = 160


@dataclass(slots=True)
class TitleConfig:
    enabled: bool = True
    provider: str = "cohere"
    model: str = "command-a-03-2025"
    max_chars: int = 60
    max_retries: int = 1
    context_buffer_sec: float = 5.0
    temperature: float = 0.8
    api_key: str = ""


@dataclass(slots=True)
class LogConfig:
    level: str = "INFO"
    format: str = "json"


@dataclass(slots=True)
class Settings:
    tools: ToolsConfig
    paths: PathsConfig
    render: RenderConfig
    thumbnails: ThumbnailConfig
    title: TitleConfig
    log: LogConfig
    root_dir: Path


_PROGRESS_MODES = {"clamp", "scale"}
_THUMBNAIL_MODES = {"rich", "minimal"}


def load_settings(root_dir: Path, config_path: Path | None = None) -> Settings:
    config_path = config_path or root_dir / "config" / "default.toml"
    with config_path.open("rb") as fh:
        raw = tomllib.load(fh)

    tools = raw.get("tools", {})
    paths = raw.get("paths", {})
    render = raw.get("render", {})
    thumbs = raw.get("thumbnails", {})
    title = raw.get("title", {})
    log = raw.get("log", {})

    progress_mode = str(render.get("progress_mode", "clamp"))
    if progress_mode not in _PROGRESS_MODES:
        raise ValueError(f"render.progress_mode must be one of {sorted(_PROGRESS_MODES)}: {progress_mode}")
    thumbnail_mode = str(thumbs.get("mode", "rich"))
    if thumbnail_mode not in _THUMBNAIL_MODES:
        raise ValueError(f"thumbnails.mode must be one of {sorted(_THUMBNAIL_MODES)}: {thumbnail_mode}")

    return Settings(
        tools=ToolsConfig(
            ffmpeg_path=os.getenv("FFMPEG_PATH") or str(tools.get("ffmpeg_path", "ffmpeg")),
            ffprobe_path=os.getenv("FFPROBE_PATH") or str(tools.get("ffprobe_path", "ffprobe")),
        ),
        paths=PathsConfig(
            temp_dir=_resolve(root_dir, paths.get("temp_dir", "temp")),
            clips_dir=_resolve(root_dir, paths.get("clips_dir", "clips")),
            assets_dir=_resolve(root_dir, paths.get("assets_dir", "assets")),
        ),
        render=RenderConfig(
            video_width=int(render.get("video_width", 1920)),
            video_height=int(render.get("video_height", 1080)),
            fps=int(render.get("fps", 30)),
            video_codec=str(render.get("video_codec", "libx264")),
            audio_codec=str(render.get("audio_codec", "aac")),
            audio_sample_rate=int(render.get("audio_sample_rate", 48000)),
            preset=str(render.get("preset", "superfast")),
            crf=int(render.get("crf", 23)),
            progress_cap=float(render.get("progress_cap", 90.0)),
            progress_mode=progress_mode,
        ),
        thumbnails=ThumbnailConfig(
            mode=thumbnail_mode,
            jpeg_quality=int(thumbs.get("jpeg_quality", 2)),
            parallelism=max(1, int(thumbs.get("parallelism", 5))),
            preview_width=int(thumbs.get("preview_width", 160)),
        ),
        title=TitleConfig(
            enabled=bool(title.get("enabled", True)),
            provider=str(title.get("provider", "cohere")),
            model=os.getenv("COHERE_MODEL") or str(title.get("model", "command-a-03-2025")),
            max_chars=int(title.get("max_chars", 60)),
            max_retries=max(0, int(title.get("max_retries", 1))),
            context_buffer_sec=float(title.get("context_buffer_sec", 5.0)),
            temperature=float(title.get("temperature", 0.8)),
            api_key=os.getenv("COHERE_API_KEY", ""),
        ),
        log=LogConfig(
            level=str(log.get("level", "INFO")).upper(),
            format=str(log.get("format", "json")),
        ),
        root_dir=root_dir,
    )


def _resolve(root_dir: Path, value: str) -> Path:
    path = Path(value)
    return path if path.is_absolute() else root_dir / path
