"""Tolerant parsing of time markers.

One parser serves both transcript markers (``[125]``, ``[02:05]``,
``[00:02:05]``) and the ``out_time`` marks ffmpeg writes to ``-progress``
(``00:00:05.000000``).
"""

from __future__ import annotations

import re

from .models import TimeMarker

_NUMBER = r"\d+(?:\.\d+)?"
_TIME_RE = re.compile(rf"^(?:(\d+):)?(?:(\d+):)?({_NUMBER})$")
_BRACKET_RE = re.compile(r"\[([^\[\]\n]{1,32})\]")


def parse_time_marker(text: str | None) -> float | None:
    """Return seconds for ``SS``, ``MM:SS`` or ``HH:MM:SS`` (fractions allowed).

    Returns None for anything that is not a timestamp, never raises.
    """
    if not isinstance(text, str):
        return None
    value = text.strip()
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1].strip()
    match = _TIME_RE.match(value)
    if match is None:
        return None

    first, second, seconds = match.groups()
    # a single colon group lands in `first`, meaning minutes
    if second is None:
        hours, minutes = 0, int(first) if first is not None else 0
    else:
        hours, minutes = int(first), int(second)
    secs = float(seconds)
    if (first is not None or second is not None) and secs >= 60:
        return None
    if second is not None and minutes >= 60:
        return None
    return hours * 3600 + minutes * 60 + secs


def find_markers(transcript: str) -> tuple[TimeMarker, ...]:
    markers: list[TimeMarker] = []
    for match in _BRACKET_RE.finditer(transcript or ""):
        seconds = parse_time_marker(match.group(1))
        if seconds is None:
            continue
        markers.append(TimeMarker(time_seconds=seconds, text_offset=match.start()))
    return tuple(markers)
