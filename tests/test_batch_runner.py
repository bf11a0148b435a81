import threading
from pathlib import Path

import pytest

from clip_forge.application.batch_runner import BatchRunner, requests_from_payload
from clip_forge.domain.errors import InvalidRequest, RenderError
from clip_forge.domain.models import ClipCancelled, ClipRequest, ClipStatus, RenderResult


class FakePipeline:
    def __init__(self, failing_titles=(), cancel_after=None, cancel_event=None):
        self.failing_titles = set(failing_titles)
        self.cancel_after = cancel_after
        self.cancel_event = cancel_event
        self.seen = []

    def create_clip(self, request, on_progress=None, cancel_event=None):
        self.seen.append(request.title)
        if on_progress:
            on_progress(50.0, "Rendering video: 50%")
        if request.title in self.failing_titles:
            raise RenderError("ffmpeg failed", diagnostic="moov atom not found")
        if self.cancel_after == request.title:
            self.cancel_event.set()
            return ClipCancelled(clip_identifier=request.title.lower(), stage="render")
        return RenderResult(
            rendered_video_path=Path(f"clips/{request.title}.mp4"),
            clip_identifier=request.title.lower(),
            label=request.title,
        )


class DummyLogger:
    def info(self, *args, **kwargs):
        pass

    def warning(self, *args, **kwargs):
        pass


def _requests(*titles):
    return [ClipRequest("vid", title, 10.0 * i, 10.0 * i + 5) for i, title in enumerate(titles)]


def test_render_error_is_reported_per_clip_and_batch_continues():
    events = []
    pipeline = FakePipeline(failing_titles={"B"})

    report = BatchRunner(pipeline, DummyLogger()).run(
        _requests("A", "B", "C"), on_event=lambda name, data: events.append((name, data))
    )

    assert pipeline.seen == ["A", "B", "C"]
    assert [o.status for o in report.outcomes] == [ClipStatus.COMPLETED, ClipStatus.FAILED, ClipStatus.COMPLETED]
    assert "moov atom not found" in report.outcomes[1].error
    names = [name for name, _ in events]
    assert names == [
        "clip-start",
        "clip-progress",
        "clip-complete",
        "clip-start",
        "clip-progress",
        "clip-error",
        "clip-start",
        "clip-progress",
        "clip-complete",
        "all-complete",
    ]
    assert events[-1][1] == {"success": False, "completed": 2, "failed": 1, "cancelled": 0}


def test_cancellation_stops_remaining_clips_without_errors():
    cancel_event = threading.Event()
    pipeline = FakePipeline(cancel_after="A", cancel_event=cancel_event)

    report = BatchRunner(pipeline, DummyLogger()).run(_requests("A", "B"), cancel_event=cancel_event)

    assert pipeline.seen == ["A"]
    assert [o.status for o in report.outcomes] == [ClipStatus.CANCELLED, ClipStatus.CANCELLED]
    assert report.failed == []


def test_requests_from_payload_accepts_camel_case_body():
    payload = {
        "videoId": "abc",
        "prefix": "T1E2",
        "transcription": "[0] hola",
        "clips": [
            {"title": "Uno", "startTime": 100, "endTime": 130, "duration": 30},
            {"title": "Dos", "start_time": 200, "end_time": 215},
        ],
    }

    requests = requests_from_payload(payload)

    assert [(r.title, r.start_time, r.duration) for r in requests] == [("Uno", 100.0, 30.0), ("Dos", 200.0, 15.0)]
    assert all(r.output_prefix == "T1E2" and r.transcript == "[0] hola" for r in requests)


@pytest.mark.parametrize(
    "payload",
    [
        {"clips": [{"title": "x", "startTime": 0, "endTime": 5}]},
        {"videoId": "abc", "clips": []},
        {"videoId": "abc", "clips": [{"title": "x", "startTime": 0, "endTime": 5, "duration": 9}]},
        {"videoId": "abc", "clips": [{"title": "x", "startTime": 0}]},
    ],
)
def test_requests_from_payload_rejects_malformed_bodies(payload):
    with pytest.raises(InvalidRequest):
        requests_from_payload(payload)
