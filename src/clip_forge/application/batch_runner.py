from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from clip_forge.domain.errors import ClipForgeError, InvalidRequest
from clip_forge.domain.models import BatchReport, ClipCancelled, ClipOutcome, ClipRequest, ClipStatus

EventCallback = Callable[[str, dict[str, Any]], None]


def requests_from_payload(payload: dict[str, Any]) -> list[ClipRequest]:
    """Build clip requests from a batch body.

    Accepts ``videoId``/``video_id``, ``prefix``, ``transcription``/``transcript``
    and ``clips`` entries with ``title``, ``startTime``/``start_time``,
    ``endTime``/``end_time`` and an optional ``duration``.
    """
    if not isinstance(payload, dict):
        raise InvalidRequest("Batch payload must be a JSON object")
    video_id = str(payload.get("videoId") or payload.get("video_id") or "").strip()
    clips = payload.get("clips") or []
    if not video_id or not isinstance(clips, list) or not clips:
        raise InvalidRequest("Missing videoId or clips")
    prefix = payload.get("prefix") or None
    transcript = payload.get("transcription") or payload.get("transcript") or None

    requests: list[ClipRequest] = []
    for idx, item in enumerate(clips):
        if not isinstance(item, dict):
            raise InvalidRequest(f"clips[{idx}] must be an object")
        requests.append(
            ClipRequest.build(
                source_video_id=video_id,
                title=item.get("title", ""),
                start_time=_pick(item, "startTime", "start_time"),
                end_time=_pick(item, "endTime", "end_time"),
                duration=item.get("duration"),
                output_prefix=prefix,
                transcript=transcript,
            )
        )
    return requests


class BatchRunner:
    def __init__(self, pipeline, logger) -> None:
        self.pipeline = pipeline
        self.logger = logger

    def run(
        self,
        requests: Sequence[ClipRequest],
        on_event: EventCallback | None = None,
        cancel_event=None,
    ) -> BatchReport:
        """Create clips one after another; a failed clip never stops the rest."""
        report = BatchReport()
        total = len(requests)
        emit = on_event or (lambda _name, _data: None)
        self.logger.info("batch.started", total=total)

        for index, request in enumerate(requests):
            if cancel_event is not None and cancel_event.is_set():
                report.outcomes.append(ClipOutcome(index=index, request=request, status=ClipStatus.CANCELLED))
                emit("clip-cancelled", {"title": request.title, "index": index, "stage": "queued"})
                continue

            emit("clip-start", {"title": request.title, "index": index, "total": total})

            def _on_progress(percent: float, status: str | None = None, _index=index, _title=request.title) -> None:
                emit(
                    "clip-progress",
                    {"title": _title, "index": _index, "percent": round(percent, 2), "status": status},
                )

            try:
                result = self.pipeline.create_clip(request, on_progress=_on_progress, cancel_event=cancel_event)
            except ClipForgeError as exc:
                self.logger.warning("batch.clip_failed", index=index, title=request.title, error=str(exc))
                report.outcomes.append(
                    ClipOutcome(index=index, request=request, status=ClipStatus.FAILED, error=str(exc))
                )
                emit("clip-error", {"title": request.title, "index": index, "error": str(exc)})
                continue

            if isinstance(result, ClipCancelled):
                report.outcomes.append(ClipOutcome(index=index, request=request, status=ClipStatus.CANCELLED))
                emit("clip-cancelled", {"title": request.title, "index": index, "stage": result.stage})
                continue

            report.outcomes.append(
                ClipOutcome(index=index, request=request, status=ClipStatus.COMPLETED, result=result)
            )
            emit(
                "clip-complete",
                {
                    "title": request.title,
                    "index": index,
                    "path": str(result.rendered_video_path),
                    "clip_id": result.clip_identifier,
                    "label": result.label,
                    "generated_title": result.generated_title,
                    "thumbnails": [
                        {
                            "label": thumb.label,
                            "timestamp": round(thumb.timestamp_seconds, 3),
                            "path": str(thumb.file_path),
                        }
                        for thumb in result.generated_thumbnails
                    ],
                    "warnings": list(result.warnings),
                    "success": True,
                },
            )

        emit(
            "all-complete",
            {
                "success": not report.failed,
                "completed": len(report.completed),
                "failed": len(report.failed),
                "cancelled": len(report.cancelled),
            },
        )
        self.logger.info(
            "batch.completed",
            completed=len(report.completed),
            failed=len(report.failed),
            cancelled=len(report.cancelled),
        )
        return report


def _pick(item: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    raise InvalidRequest(f"Missing field: {keys[0]}")
