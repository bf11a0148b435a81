from pathlib import Path

from clip_forge.infrastructure.render.ffmpeg_builder import FFmpegCommandBuilder
from clip_forge.utils.config import RenderConfig, ToolsConfig


def _cmd(cfg: RenderConfig | None = None) -> list[str]:
    builder = FFmpegCommandBuilder(cfg or RenderConfig(), ToolsConfig(ffmpeg_path="/opt/ffmpeg"))
    return builder.build(Path("intro.mp4"), Path("src.mp4"), Path("ending.mp4"), 100.0, 30.0, Path("out.mp4"))


def test_command_trims_only_the_source_input():
    cmd = _cmd()

    assert cmd[0] == "/opt/ffmpeg"
    inputs = [i for i, token in enumerate(cmd) if token == "-i"]
    assert [cmd[i + 1] for i in inputs] == ["intro.mp4", "src.mp4", "ending.mp4"]
    src_idx = inputs[1]
    assert cmd[src_idx - 4 : src_idx] == ["-ss", "100.000", "-t", "30.000"]
    assert "-ss" not in cmd[: inputs[0]]


def test_filter_graph_normalizes_and_concatenates_in_order():
    cmd = _cmd(RenderConfig(video_width=1280, video_height=720, fps=25))
    graph = cmd[cmd.index("-filter_complex") + 1]

    for idx in range(3):
        assert (
            f"[{idx}:v]scale=1280:720:force_original_aspect_ratio=decrease,"
            f"pad=1280:720:(ow-iw)/2:(oh-ih)/2,setsar=1,fps=25" in graph
        )
        assert f"[{idx}:a]aresample=48000" in graph
    assert graph.endswith("[v0][a0][v1][a1][v2][a2]concat=n=3:v=1:a=1[v][a]")


def test_output_options_are_fast_start_and_stream_progress():
    cmd = _cmd()

    assert cmd[cmd.index("-preset") + 1] == "superfast"
    assert cmd[cmd.index("-crf") + 1] == "23"
    assert cmd[cmd.index("-movflags") + 1] == "+faststart"
    assert cmd[cmd.index("-progress") + 1] == "pipe:1"
    assert cmd[-1] == "out.mp4"
