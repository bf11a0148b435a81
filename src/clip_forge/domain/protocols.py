from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from .models import RenderedVideo

ProgressCallback = Callable[[float, str | None], None]


class TitleGenerator(Protocol):
    def generate(self, fragment: str, original_title: str) -> str:
        """Return a short suggested title for the transcript fragment."""


class Renderer(Protocol):
    def render(
        self,
        intro_path: Path,
        source_path: Path,
        ending_path: Path,
        start_time: float,
        duration: float,
        output_path: Path,
        on_progress: ProgressCallback | None = None,
        cancel_event=None,
    ) -> RenderedVideo:
        """Render intro + trimmed source + ending into output_path."""
