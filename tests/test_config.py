from pathlib import Path

import pytest

from clip_forge.utils.config import load_settings

ROOT = Path(__file__).resolve().parents[1]


def test_default_config_loads_with_expected_render_defaults(monkeypatch):
    monkeypatch.delenv("FFMPEG_PATH", raising=False)
    monkeypatch.delenv("FFPROBE_PATH", raising=False)

    settings = load_settings(ROOT)

    assert (settings.render.video_width, settings.render.video_height, settings.render.fps) == (1920, 1080, 30)
    assert settings.render.progress_cap == 90.0
    assert settings.tools.ffmpeg_path == "ffmpeg"
    assert settings.paths.clips_dir == ROOT / "clips"
    assert settings.title.context_buffer_sec == 5.0


def test_tool_paths_come_from_environment(monkeypatch):
    monkeypatch.setenv("FFMPEG_PATH", "/opt/bin/ffmpeg")
    monkeypatch.setenv("FFPROBE_PATH", "/opt/bin/ffprobe")

    settings = load_settings(ROOT)

    assert settings.tools.ffmpeg_path == "/opt/bin/ffmpeg"
    assert settings.tools.ffprobe_path == "/opt/bin/ffprobe"


def test_unknown_thumbnail_mode_is_rejected(tmp_path):
    config = tmp_path / "bad.toml"
    config.write_text('[thumbnails]\nmode = "fancy"\n', encoding="utf-8")

    with pytest.raises(ValueError, match="thumbnails.mode"):
        load_settings(tmp_path, config)
