from __future__ import annotations

import json
from pathlib import Path

from clip_forge.domain.models import RenderResult
from clip_forge.utils.paths import ensure_dir

VIDEO_EXT = "mp4"
THUMB_EXT = "jpg"


class ArtifactStore:
    def __init__(self, temp_dir: Path, clips_dir: Path, assets_dir: Path) -> None:
        self.temp_dir = temp_dir
        self.clips_dir = clips_dir
        self.assets_dir = assets_dir

    def source_path(self, video_id: str) -> Path:
        return self.temp_dir / f"{video_id}.{VIDEO_EXT}"

    def clip_path(self, label: str) -> Path:
        return ensure_dir(self.clips_dir) / f"{label}.{VIDEO_EXT}"

    def intro_path(self) -> Path:
        return self.assets_dir / f"intro.{VIDEO_EXT}"

    def ending_path(self) -> Path:
        return self.assets_dir / f"ending.{VIDEO_EXT}"

    def thumb_dir(self, clip_key: str) -> Path:
        return ensure_dir(self.temp_dir / "thumbnails" / clip_key)

    def thumb_path(self, clip_key: str, index: int | str) -> Path:
        return self.thumb_dir(clip_key) / f"thumb-{index}.{THUMB_EXT}"

    def manifest_path(self, clip_key: str) -> Path:
        return self.thumb_dir(clip_key) / "manifest.json"

    def write_manifest(self, clip_key: str, result: RenderResult) -> Path:
        payload = {
            "clip_identifier": result.clip_identifier,
            "label": result.label,
            "rendered_video_path": str(result.rendered_video_path),
            "generated_title": result.generated_title,
            "thumbnails": [
                {
                    "label": thumb.label,
                    "timestamp_seconds": round(thumb.timestamp_seconds, 3),
                    "file_path": str(thumb.file_path),
                }
                for thumb in result.generated_thumbnails
            ],
            "warnings": list(result.warnings),
        }
        path = self.manifest_path(clip_key)
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        return path
