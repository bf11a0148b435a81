from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

from clip_forge.application.batch_runner import BatchRunner
from clip_forge.application.clip_pipeline import ClipPipeline
from clip_forge.infrastructure.llm.cohere_client import CohereTitleGenerator
from clip_forge.infrastructure.llm.fallback_client import PassthroughTitleGenerator
from clip_forge.infrastructure.render.bumper_renderer import BumperRenderer
from clip_forge.infrastructure.render.ffmpeg_builder import FFmpegCommandBuilder
from clip_forge.infrastructure.storage.artifact_store import ArtifactStore
from clip_forge.infrastructure.thumbnails.frame_extractor import FrameExtractor
from clip_forge.infrastructure.thumbnails.loudness import LoudnessPeakLocator
from clip_forge.utils.config import Settings, load_settings
from clip_forge.utils.logger import configure_logger, get_logger

ROOT_DIR = Path(__file__).resolve().parents[2]


def build_title_generator(settings: Settings, root_dir: Path, logger):
    title = settings.title
    if not title.enabled:
        return PassthroughTitleGenerator()
    if not title.api_key.strip():
        logger.warning("title.service_unset", provider=title.provider)
        return PassthroughTitleGenerator()
    return CohereTitleGenerator(
        api_key=title.api_key,
        model=title.model,
        prompt_path=root_dir / "prompts" / "title_generator.md",
        max_chars=title.max_chars,
        temperature=title.temperature,
    )


def build_pipeline(root_dir: Path = ROOT_DIR, config_path: Path | None = None) -> ClipPipeline:
    load_dotenv(root_dir / ".env")
    settings = load_settings(root_dir, config_path)
    configure_logger(settings.log.level, settings.log.format)
    logger = get_logger()

    store = ArtifactStore(
        temp_dir=settings.paths.temp_dir,
        clips_dir=settings.paths.clips_dir,
        assets_dir=settings.paths.assets_dir,
    )
    renderer = BumperRenderer(
        config=settings.render,
        tools=settings.tools,
        command_builder=FFmpegCommandBuilder(settings.render, settings.tools),
        logger=logger,
    )
    return ClipPipeline(
        settings=settings,
        store=store,
        renderer=renderer,
        frame_extractor=FrameExtractor(settings.thumbnails, settings.tools, logger),
        loudness_locator=LoudnessPeakLocator(settings.tools, logger),
        title_generator=build_title_generator(settings, root_dir, logger),
        logger=logger,
    )


def build_batch_runner(pipeline: ClipPipeline) -> BatchRunner:
    return BatchRunner(pipeline=pipeline, logger=pipeline.logger)
