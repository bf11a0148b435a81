from __future__ import annotations

from collections.abc import Sequence

from .models import TimeMarker
from .timestamps import find_markers

DEFAULT_BUFFER_SEC = 5.0


def extract_fragment(
    transcript: str,
    start: float,
    end: float,
    buffer_sec: float = DEFAULT_BUFFER_SEC,
) -> str:
    """Return the slice of ``transcript`` covering [start, end] plus a buffer.

    The slice begins at the last marker at or before ``start - buffer`` and
    stops at the first marker at or after ``end + buffer``; without such
    markers it runs from the beginning or to the end of the text.
    """
    text = transcript or ""
    markers = find_markers(text)
    start_offset, end_offset = fragment_bounds(markers, len(text), start, end, buffer_sec)
    return text[start_offset:end_offset].strip()


def fragment_bounds(
    markers: Sequence[TimeMarker],
    text_length: int,
    start: float,
    end: float,
    buffer_sec: float = DEFAULT_BUFFER_SEC,
) -> tuple[int, int]:
    buffered_start = max(0.0, float(start) - buffer_sec)
    buffered_end = float(end) + buffer_sec

    # filters run over every marker in text order; nothing assumes sortedness
    before = [m for m in markers if m.time_seconds <= buffered_start]
    after = [m for m in markers if m.time_seconds >= buffered_end]

    start_offset = before[-1].text_offset if before else 0
    end_offset = after[0].text_offset if after else text_length
    if end_offset < start_offset:
        end_offset = text_length
    return start_offset, end_offset
