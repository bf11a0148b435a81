from __future__ import annotations

import argparse
import json
import signal
import sys
import threading
from pathlib import Path

from clip_forge.app import ROOT_DIR, build_batch_runner, build_pipeline
from clip_forge.application.batch_runner import requests_from_payload
from clip_forge.domain.errors import ClipForgeError
from clip_forge.domain.models import ClipCancelled, ClipRequest, RenderResult


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clip-forge", description="Branded clip renderer")
    parser.add_argument("--root", default=str(ROOT_DIR), help="Project root holding config/, assets/ and temp/")
    parser.add_argument("--config", default="", help="Alternative TOML config file")
    sub = parser.add_subparsers(dest="command", required=True)

    render_cmd = sub.add_parser("render", help="Render one clip from a downloaded source video")
    render_cmd.add_argument("--video-id", required=True, help="Source video id (temp/<id>.mp4)")
    render_cmd.add_argument("--title", required=True)
    render_cmd.add_argument("--start", type=float, required=True, help="Start time in seconds")
    render_cmd.add_argument("--end", type=float, required=True, help="End time in seconds")
    render_cmd.add_argument("--prefix", default="", help="Optional output prefix")
    render_cmd.add_argument("--transcript-file", default="", help="Transcript with [t] markers for title suggestion")

    batch_cmd = sub.add_parser("batch", help="Render every clip of a JSON batch file, one after another")
    batch_cmd.add_argument("file", help='JSON: {"videoId": ..., "prefix": ..., "transcription": ..., "clips": [...]}')

    title_cmd = sub.add_parser("suggest-title", help="Suggest a title for a transcript range")
    title_cmd.add_argument("--transcript-file", required=True)
    title_cmd.add_argument("--start", type=float, required=True)
    title_cmd.add_argument("--end", type=float, required=True)
    title_cmd.add_argument("--title", required=True, help="Original title")

    frame_cmd = sub.add_parser("capture-frame", help="Capture a custom thumbnail from a rendered clip")
    frame_cmd.add_argument("--clip-id", required=True, help="Clip identifier (thumbnail directory key)")
    frame_cmd.add_argument("--video", required=True, help="Rendered clip path")
    frame_cmd.add_argument("--timestamp", type=float, required=True)

    return parser


def _install_cancel_handler() -> threading.Event:
    cancel_event = threading.Event()

    def _handler(_signum, _frame) -> None:
        cancel_event.set()

    signal.signal(signal.SIGINT, _handler)
    return cancel_event


def _print_event(name: str, data: dict) -> None:
    print(json.dumps({"event": name, "data": data}, ensure_ascii=False), flush=True)


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8") if path else ""


def _cmd_render(pipeline, args: argparse.Namespace) -> int:
    request = ClipRequest.build(
        source_video_id=args.video_id,
        title=args.title,
        start_time=args.start,
        end_time=args.end,
        output_prefix=args.prefix,
        transcript=_read_text(args.transcript_file),
    )
    cancel_event = _install_cancel_handler()

    def _on_progress(percent: float, status: str | None = None) -> None:
        _print_event("clip-progress", {"percent": round(percent, 2), "status": status})

    result = pipeline.create_clip(request, on_progress=_on_progress, cancel_event=cancel_event)
    if isinstance(result, ClipCancelled):
        _print_event("clip-cancelled", {"clip_id": result.clip_identifier, "stage": result.stage})
        return 0
    _print_event("clip-complete", _result_payload(result))
    return 0


def _cmd_batch(pipeline, args: argparse.Namespace) -> int:
    payload = json.loads(Path(args.file).read_text(encoding="utf-8"))
    requests = requests_from_payload(payload)
    cancel_event = _install_cancel_handler()
    report = build_batch_runner(pipeline).run(requests, on_event=_print_event, cancel_event=cancel_event)
    return 1 if report.failed else 0


def _cmd_suggest_title(pipeline, args: argparse.Namespace) -> int:
    title = pipeline.suggest_title(_read_text(args.transcript_file), args.start, args.end, args.title)
    print(title)
    return 0


def _cmd_capture_frame(pipeline, args: argparse.Namespace) -> int:
    candidate = pipeline.capture_frame(args.clip_id, Path(args.video), args.timestamp)
    print(candidate.file_path)
    return 0


def _result_payload(result: RenderResult) -> dict:
    return {
        "path": str(result.rendered_video_path),
        "clip_id": result.clip_identifier,
        "label": result.label,
        "generated_title": result.generated_title,
        "thumbnails": [
            {"label": t.label, "timestamp": round(t.timestamp_seconds, 3), "path": str(t.file_path)}
            for t in result.generated_thumbnails
        ],
        "warnings": list(result.warnings),
    }


_COMMANDS = {
    "render": _cmd_render,
    "batch": _cmd_batch,
    "suggest-title": _cmd_suggest_title,
    "capture-frame": _cmd_capture_frame,
}


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    pipeline = build_pipeline(Path(args.root), Path(args.config) if args.config else None)
    try:
        code = _COMMANDS[args.command](pipeline, args)
    except ClipForgeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        code = 1
    raise SystemExit(code)


if __name__ == "__main__":
    main()
