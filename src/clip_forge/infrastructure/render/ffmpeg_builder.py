from __future__ import annotations

from pathlib import Path

from clip_forge.utils.config import RenderConfig, ToolsConfig

INTRO, SEGMENT, ENDING = 0, 1, 2


class FFmpegCommandBuilder:
    def __init__(self, config: RenderConfig, tools: ToolsConfig) -> None:
        self.config = config
        self.tools = tools

    def build(
        self,
        intro_path: Path,
        source_path: Path,
        ending_path: Path,
        start_time: float,
        duration: float,
        output_path: Path,
    ) -> list[str]:
        return [
            self.tools.ffmpeg_path,
            "-y",
            "-hide_banner",
            "-nostats",
            "-i",
            str(intro_path),
            "-ss",
            f"{start_time:.3f}",
            "-t",
            f"{duration:.3f}",
            "-i",
            str(source_path),
            "-i",
            str(ending_path),
            "-filter_complex",
            self.build_filter_graph(),
            "-map",
            "[v]",
            "-map",
            "[a]",
            "-c:v",
            self.config.video_codec,
            "-preset",
            self.config.preset,
            "-crf",
            str(self.config.crf),
            "-pix_fmt",
            "yuv420p",
            "-c:a",
            self.config.audio_codec,
            "-movflags",
            "+faststart",
            "-progress",
            "pipe:1",
            str(output_path),
        ]

    def build_filter_graph(self) -> str:
        parts = [self._video_chain(idx) for idx in (INTRO, SEGMENT, ENDING)]
        parts += [self._audio_chain(idx) for idx in (INTRO, SEGMENT, ENDING)]
        concat_inputs = "".join(f"[v{idx}][a{idx}]" for idx in (INTRO, SEGMENT, ENDING))
        parts.append(f"{concat_inputs}concat=n=3:v=1:a=1[v][a]")
        return ";".join(parts)

    def _video_chain(self, idx: int) -> str:
        w = self.config.video_width
        h = self.config.video_height
        return (
            f"[{idx}:v]scale={w}:{h}:force_original_aspect_ratio=decrease,"
            f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2,setsar=1,fps={self.config.fps},"
            f"settb=AVTB,setpts=PTS-STARTPTS[v{idx}]"
        )

    def _audio_chain(self, idx: int) -> str:
        return (
            f"[{idx}:a]aresample={self.config.audio_sample_rate},"
            f"aformat=sample_fmts=fltp:channel_layouts=stereo,"
            f"asetpts=PTS-STARTPTS[a{idx}]"
        )
