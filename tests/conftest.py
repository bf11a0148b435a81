from __future__ import annotations

import sys
from pathlib import Path

import pytest

from clip_forge.utils.config import (
    LogConfig,
    PathsConfig,
    RenderConfig,
    Settings,
    ThumbnailConfig,
    TitleConfig,
    ToolsConfig,
)

# Stand-in for ffmpeg/ffprobe driven by FAKE_* environment variables.
FAKE_TOOL = r'''#!@PYTHON@
import json
import os
import sys
import time

args = sys.argv[1:]
tool = os.path.basename(sys.argv[0])

if tool == "ffprobe":
    name = os.path.basename(args[-1])
    durations = json.loads(os.environ.get("FAKE_DURATIONS", "{}"))
    if name not in durations:
        sys.stderr.write(args[-1] + ": No such file or directory\n")
        sys.exit(1)
    print(json.dumps({"format": {"duration": str(durations[name])}}))
    sys.exit(0)

if "-progress" in args:
    mode = os.environ.get("FAKE_RENDER_MODE", "ok")
    if mode == "fail":
        sys.stderr.write("Error initializing complex filters.\nInvalid argument\n")
        sys.exit(1)
    if mode == "hang":
        print("out_time=00:00:01.000000", flush=True)
        time.sleep(30)
        sys.exit(0)
    for mark in os.environ.get("FAKE_TIMEMARKS", "").split(","):
        if mark:
            print("frame=1")
            print("out_time=" + mark, flush=True)
    print("progress=end", flush=True)
    with open(args[-1], "wb") as fh:
        fh.write(b"video")
    sys.exit(0)

if "-af" in args:
    if os.environ.get("FAKE_LOUDNESS_MODE") == "fail":
        sys.stderr.write("Invalid data found when processing input\n")
        sys.exit(1)
    for idx, pair in enumerate(os.environ.get("FAKE_LOUDNESS", "").split(",")):
        if not pair:
            continue
        stamp, value = pair.split("=")
        print("frame:%d    pts:%d    pts_time:%s" % (idx, idx, stamp))
        print("lavfi.r128.M=%s" % value)
    sys.exit(0)

if "-frames:v" in args:
    failing = os.environ.get("FAKE_FRAME_FAIL", "").split(",")
    if os.path.basename(args[-1]) in failing or "all" in failing:
        sys.stderr.write("Output file is empty, nothing was encoded\n")
        sys.exit(1)
    if args[-1] == "pipe:1":
        sys.stdout.buffer.write(b"\xff\xd8preview")
        sys.exit(0)
    with open(args[-1], "wb") as fh:
        fh.write(b"\xff\xd8frame")
    sys.exit(0)

sys.exit(2)
'''


class DummyLogger:
    def __init__(self):
        self.events = []

    def info(self, event, **kwargs):
        self.events.append(("info", event, kwargs))

    def warning(self, event, **kwargs):
        self.events.append(("warning", event, kwargs))

    def exception(self, event, **kwargs):
        self.events.append(("exception", event, kwargs))

    def names(self, level=None):
        return [name for lvl, name, _ in self.events if level is None or lvl == level]


@pytest.fixture
def logger() -> DummyLogger:
    return DummyLogger()


@pytest.fixture
def fake_tools(tmp_path: Path, monkeypatch) -> ToolsConfig:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    for name in ("ffmpeg", "ffprobe"):
        path = bin_dir / name
        path.write_text(FAKE_TOOL.replace("@PYTHON@", sys.executable), encoding="utf-8")
        path.chmod(0o755)
    monkeypatch.setenv("FAKE_DURATIONS", "{}")
    for var in ("FAKE_RENDER_MODE", "FAKE_TIMEMARKS", "FAKE_LOUDNESS", "FAKE_LOUDNESS_MODE", "FAKE_FRAME_FAIL"):
        monkeypatch.delenv(var, raising=False)
    return ToolsConfig(ffmpeg_path=str(bin_dir / "ffmpeg"), ffprobe_path=str(bin_dir / "ffprobe"))


@pytest.fixture
def settings(tmp_path: Path, fake_tools: ToolsConfig) -> Settings:
    return Settings(
        tools=fake_tools,
        paths=PathsConfig(
            temp_dir=tmp_path / "temp",
            clips_dir=tmp_path / "clips",
            assets_dir=tmp_path / "assets",
        ),
        render=RenderConfig(),
        thumbnails=ThumbnailConfig(),
        title=TitleConfig(max_retries=0),
        log=LogConfig(),
        root_dir=tmp_path,
    )
