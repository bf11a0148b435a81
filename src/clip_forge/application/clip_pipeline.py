from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path

from clip_forge.application.retry_policy import best_effort, retry
from clip_forge.domain.errors import ExtractError, OperationCancelled, RenderCancelled
from clip_forge.domain.models import (
    ClipCancelled,
    ClipIdentity,
    ClipRequest,
    RenderedVideo,
    RenderResult,
    ThumbnailCandidate,
)
from clip_forge.domain.protocols import ProgressCallback, Renderer, TitleGenerator
from clip_forge.domain.transcript_aligner import extract_fragment
from clip_forge.infrastructure.storage.artifact_store import ArtifactStore
from clip_forge.infrastructure.thumbnails.frame_extractor import FrameExtractor
from clip_forge.infrastructure.thumbnails.loudness import LoudnessPeakLocator
from clip_forge.utils.config import Settings
from clip_forge.utils.media import CommandCancelled, probe_duration_or_zero
from clip_forge.utils.paths import build_clip_identity

DEFAULT_THUMB_FRACTION = 0.3
RICH_THUMB_FRACTIONS = (0.2, 0.4, 0.6, 0.8)
THUMB_PROGRESS_START = 91.0
THUMB_PROGRESS_END = 99.0
POLL_INTERVAL_SEC = 0.2
NO_THUMBNAILS_WARNING = "No thumbnail candidates could be generated"


class ClipPipeline:
    def __init__(
        self,
        settings: Settings,
        store: ArtifactStore,
        renderer: Renderer,
        frame_extractor: FrameExtractor,
        loudness_locator: LoudnessPeakLocator,
        title_generator: TitleGenerator,
        logger,
    ) -> None:
        self.settings = settings
        self.store = store
        self.renderer = renderer
        self.frame_extractor = frame_extractor
        self.loudness_locator = loudness_locator
        self.title_generator = title_generator
        self.logger = logger

    def create_clip(
        self,
        request: ClipRequest,
        on_progress: ProgressCallback | None = None,
        cancel_event=None,
    ) -> RenderResult | ClipCancelled:
        identity = build_clip_identity(request.source_video_id, request.title, request.output_prefix)
        if _is_set(cancel_event):
            return self._cancelled(identity, "queued")
        self.logger.info(
            "clip.started",
            clip=identity.key,
            label=identity.label,
            start_time=request.start_time,
            duration=request.duration,
        )

        # title generation runs alongside the render; its result is collected afterwards
        title_future = self._start_title_stage(request)

        try:
            rendered = self.renderer.render(
                intro_path=self.store.intro_path(),
                source_path=self.store.source_path(request.source_video_id),
                ending_path=self.store.ending_path(),
                start_time=request.start_time,
                duration=request.duration,
                output_path=self.store.clip_path(identity.label),
                on_progress=on_progress,
                cancel_event=cancel_event,
            )
        except RenderCancelled:
            _abandon(title_future)
            return self._cancelled(identity, "render")
        except Exception:
            _abandon(title_future)
            raise

        try:
            thumbnails = self._thumbnail_stage(identity, rendered, on_progress, cancel_event)
        except OperationCancelled:
            _abandon(title_future)
            return self._cancelled(identity, "thumbnails")

        generated_title = self._collect_title(title_future, cancel_event)
        if _is_set(cancel_event):
            return self._cancelled(identity, "title")

        result = RenderResult(
            rendered_video_path=rendered.video_path,
            clip_identifier=identity.key,
            label=identity.label,
            generated_thumbnails=tuple(thumbnails),
            generated_title=generated_title,
        )
        if not thumbnails:
            result.warnings.append(NO_THUMBNAILS_WARNING)
            self.logger.warning("clip.no_thumbnails", clip=identity.key)
        self.store.write_manifest(identity.key, result)

        if on_progress:
            on_progress(100.0, "Clip created successfully")
        self.logger.info(
            "clip.completed",
            clip=identity.key,
            video=str(rendered.video_path),
            thumbnails=len(thumbnails),
        )
        return result

    def suggest_title(self, transcript: str, start: float, end: float, original_title: str) -> str:
        """Best-effort title suggestion for the given range; falls back to ``original_title``."""

        def _generate() -> str:
            fragment = extract_fragment(
                transcript,
                start,
                end,
                buffer_sec=self.settings.title.context_buffer_sec,
            )
            return self.title_generator.generate(fragment, original_title)

        def _on_error(exc: Exception) -> None:
            self.logger.warning("title.fallback", title=original_title, error=str(exc))

        return best_effort(
            lambda: retry(_generate, retries=self.settings.title.max_retries),
            fallback=original_title,
            on_error=_on_error,
        )

    def capture_frame(
        self,
        clip_identifier: str,
        video_path: Path,
        timestamp: float,
        cancel_event=None,
    ) -> ThumbnailCandidate:
        output_path = self.store.thumb_path(clip_identifier, "custom")
        self.frame_extractor.extract_frame(video_path, timestamp, output_path, cancel_event=cancel_event)
        return ThumbnailCandidate(label="custom", timestamp_seconds=timestamp, file_path=output_path)

    def preview_frame(self, video_path: Path, timestamp: float) -> bytes:
        return self.frame_extractor.preview_frame(video_path, timestamp)

    def _start_title_stage(self, request: ClipRequest) -> Future | None:
        if not request.transcript:
            return None
        # one worker per clip, so an abandoned call never holds up the next clip
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="title")
        future = pool.submit(
            self.suggest_title,
            request.transcript,
            request.start_time,
            request.end_time,
            request.title,
        )
        pool.shutdown(wait=False)
        return future

    def _collect_title(self, future: Future | None, cancel_event) -> str | None:
        if future is None:
            return None
        while True:
            if _is_set(cancel_event):
                future.cancel()
                return None
            try:
                return future.result(timeout=POLL_INTERVAL_SEC)
            except FutureTimeout:
                continue

    def _thumbnail_stage(
        self,
        identity: ClipIdentity,
        rendered: RenderedVideo,
        on_progress: ProgressCallback | None,
        cancel_event,
    ) -> list[ThumbnailCandidate]:
        if _is_set(cancel_event):
            raise OperationCancelled("thumbnails")
        if on_progress:
            on_progress(THUMB_PROGRESS_START, "Generating thumbnails...")

        video_path = rendered.video_path
        if self.settings.thumbnails.mode == "minimal":
            media_duration = None
            plan = [(1, "default", lambda: rendered.total_expected_sec * DEFAULT_THUMB_FRACTION)]
        else:
            try:
                probed = probe_duration_or_zero(
                    video_path, self.settings.tools, self.logger, cancel_event=cancel_event
                )
            except CommandCancelled as exc:
                raise OperationCancelled("thumbnails") from exc
            media_duration = probed or None
            clip_duration = probed or rendered.total_expected_sec

            def _peak() -> float:
                peak = self.loudness_locator.find_loudest_timestamp(video_path, cancel_event=cancel_event)
                # a seek to the very last instant yields no frame
                return min(peak, max(0.0, clip_duration - 1.0 / self.settings.render.fps))

            plan = [(1, "peak", _peak)]
            for offset, fraction in enumerate(RICH_THUMB_FRACTIONS, start=1):
                plan.append((offset + 1, f"v{offset}", lambda f=fraction: clip_duration * f))

        ordered: list[tuple[int, ThumbnailCandidate]] = []
        cancelled = False
        workers = max(1, min(self.settings.thumbnails.parallelism, len(plan)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="thumb") as executor:
            future_map = {
                executor.submit(
                    self._extract_candidate,
                    identity.key,
                    index,
                    label,
                    timestamp_fn,
                    video_path,
                    media_duration,
                    cancel_event,
                ): (index, label)
                for index, label, timestamp_fn in plan
            }
            for done, future in enumerate(as_completed(future_map), start=1):
                index, label = future_map[future]
                try:
                    ordered.append((index, future.result()))
                except ExtractError as exc:
                    self.logger.warning("thumbnail.failed", clip=identity.key, label=label, error=str(exc))
                except OperationCancelled:
                    cancelled = True
                if on_progress:
                    span = THUMB_PROGRESS_END - THUMB_PROGRESS_START
                    on_progress(THUMB_PROGRESS_START + span * done / len(plan), f"Thumbnails: {done}/{len(plan)}")

        if cancelled or _is_set(cancel_event):
            raise OperationCancelled("thumbnails")
        ordered.sort(key=lambda pair: pair[0])
        return [candidate for _, candidate in ordered]

    def _extract_candidate(
        self,
        clip_key: str,
        index: int,
        label: str,
        timestamp_fn,
        video_path: Path,
        media_duration: float | None,
        cancel_event,
    ) -> ThumbnailCandidate:
        timestamp = timestamp_fn()
        output_path = self.store.thumb_path(clip_key, index)
        self.frame_extractor.extract_frame(
            video_path,
            timestamp,
            output_path,
            media_duration=media_duration,
            cancel_event=cancel_event,
        )
        return ThumbnailCandidate(label=label, timestamp_seconds=timestamp, file_path=output_path)

    def _cancelled(self, identity: ClipIdentity, stage: str) -> ClipCancelled:
        self.logger.info("clip.cancelled", clip=identity.key, stage=stage)
        return ClipCancelled(clip_identifier=identity.key, stage=stage)


def _is_set(cancel_event) -> bool:
    return cancel_event is not None and cancel_event.is_set()


def _abandon(future: Future | None) -> None:
    if future is not None:
        future.cancel()
