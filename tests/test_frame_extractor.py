import json

import pytest

from clip_forge.domain.errors import ExtractError
from clip_forge.infrastructure.thumbnails.frame_extractor import FrameExtractor
from clip_forge.utils.config import ThumbnailConfig


def _extractor(fake_tools, logger):
    return FrameExtractor(ThumbnailConfig(), fake_tools, logger)


def test_extract_frame_overwrites_existing_file(tmp_path, fake_tools, logger, monkeypatch):
    monkeypatch.setenv("FAKE_DURATIONS", json.dumps({"clip.mp4": 40}))
    output = tmp_path / "thumbs" / "thumb-1.jpg"
    output.parent.mkdir()
    output.write_bytes(b"old")

    result = _extractor(fake_tools, logger).extract_frame(tmp_path / "clip.mp4", 12.0, output)

    assert result == output
    assert output.read_bytes() == b"\xff\xd8frame"


def test_extract_frame_rejects_timestamp_past_duration(tmp_path, fake_tools, logger, monkeypatch):
    monkeypatch.setenv("FAKE_DURATIONS", json.dumps({"clip.mp4": 40}))

    with pytest.raises(ExtractError, match="exceeds media duration"):
        _extractor(fake_tools, logger).extract_frame(tmp_path / "clip.mp4", 41.0, tmp_path / "t.jpg")


def test_extract_frame_rejects_negative_timestamp(tmp_path, fake_tools, logger):
    with pytest.raises(ExtractError):
        _extractor(fake_tools, logger).extract_frame(tmp_path / "clip.mp4", -1.0, tmp_path / "t.jpg")


def test_extract_frame_fails_for_unreadable_source(tmp_path, fake_tools, logger):
    with pytest.raises(ExtractError, match="Cannot read"):
        _extractor(fake_tools, logger).extract_frame(tmp_path / "missing.mp4", 1.0, tmp_path / "t.jpg")


def test_extract_frame_wraps_ffmpeg_failure(tmp_path, fake_tools, logger, monkeypatch):
    monkeypatch.setenv("FAKE_FRAME_FAIL", "all")

    with pytest.raises(ExtractError, match="Frame capture failed"):
        _extractor(fake_tools, logger).extract_frame(
            tmp_path / "clip.mp4", 1.0, tmp_path / "t.jpg", media_duration=10.0
        )


def test_preview_frame_returns_jpeg_bytes(tmp_path, fake_tools, logger):
    video = tmp_path / "clip.mp4"
    video.write_bytes(b"video")

    data = _extractor(fake_tools, logger).preview_frame(video, 3.0)

    assert data.startswith(b"\xff\xd8")
