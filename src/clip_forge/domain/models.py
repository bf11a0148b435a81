from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from .errors import InvalidRequest

DURATION_TOLERANCE_SEC = 0.001


class ClipStatus(StrEnum):
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class ClipRequest:
    source_video_id: str
    title: str
    start_time: float
    end_time: float
    output_prefix: str | None = None
    transcript: str | None = None

    def __post_init__(self) -> None:
        if not str(self.source_video_id or "").strip():
            raise InvalidRequest("source_video_id is required")
        if not str(self.title or "").strip():
            raise InvalidRequest("title is required")
        for name in ("start_time", "end_time"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidRequest(f"{name} must be a finite number: {value!r}")
        if self.start_time < 0:
            raise InvalidRequest(f"start_time must be >= 0: {self.start_time}")
        if self.end_time <= self.start_time:
            raise InvalidRequest(f"end_time must be greater than start_time: {self.start_time}..{self.end_time}")

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @classmethod
    def build(
        cls,
        source_video_id: str,
        title: str,
        start_time: float,
        end_time: float,
        duration: float | None = None,
        output_prefix: str | None = None,
        transcript: str | None = None,
    ) -> ClipRequest:
        try:
            start = float(start_time)
            end = float(end_time)
        except (TypeError, ValueError) as exc:
            raise InvalidRequest(f"invalid time range: {start_time!r}..{end_time!r}") from exc
        request = cls(
            source_video_id=str(source_video_id or ""),
            title=str(title or ""),
            start_time=start,
            end_time=end,
            output_prefix=(output_prefix or None),
            transcript=(transcript or None),
        )
        if duration is not None:
            try:
                supplied = float(duration)
            except (TypeError, ValueError) as exc:
                raise InvalidRequest(f"invalid duration: {duration!r}") from exc
            if abs(supplied - request.duration) > DURATION_TOLERANCE_SEC:
                raise InvalidRequest(
                    f"duration {supplied} does not match end_time - start_time = {request.duration}"
                )
        return request


@dataclass(frozen=True, slots=True)
class TimeMarker:
    time_seconds: float
    text_offset: int


@dataclass(frozen=True, slots=True)
class ThumbnailCandidate:
    label: str
    timestamp_seconds: float
    file_path: Path


@dataclass(frozen=True, slots=True)
class ClipIdentity:
    label: str
    key: str


@dataclass(frozen=True, slots=True)
class RenderedVideo:
    video_path: Path
    total_expected_sec: float


@dataclass(slots=True)
class RenderResult:
    rendered_video_path: Path
    clip_identifier: str
    label: str
    generated_thumbnails: tuple[ThumbnailCandidate, ...] = ()
    generated_title: str | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ClipCancelled:
    clip_identifier: str
    stage: str


@dataclass(slots=True)
class ClipOutcome:
    index: int
    request: ClipRequest
    status: ClipStatus
    result: RenderResult | None = None
    error: str = ""


@dataclass(slots=True)
class BatchReport:
    outcomes: list[ClipOutcome] = field(default_factory=list)

    @property
    def completed(self) -> list[ClipOutcome]:
        return [o for o in self.outcomes if o.status == ClipStatus.COMPLETED]

    @property
    def failed(self) -> list[ClipOutcome]:
        return [o for o in self.outcomes if o.status == ClipStatus.FAILED]

    @property
    def cancelled(self) -> list[ClipOutcome]:
        return [o for o in self.outcomes if o.status == ClipStatus.CANCELLED]
