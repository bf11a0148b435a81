from __future__ import annotations

import hashlib
import re
import unicodedata
from pathlib import Path

from clip_forge.domain.models import ClipIdentity

_PATH_HOSTILE_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f\x7f]')
_SLUG_RE = re.compile(r"[^0-9a-z]+")
SLUG_MAX_CHARS = 40
KEY_HASH_CHARS = 10


def sanitize_title(title: str) -> str:
    sanitized = _PATH_HOSTILE_RE.sub("-", title or "")
    sanitized = re.sub(r"\s+", " ", sanitized).strip(" .")
    return sanitized or "clip"


def build_clip_identity(source_video_id: str, title: str, prefix: str | None = None) -> ClipIdentity:
    """Readable label for display and file names, hashed key for temp storage."""
    safe_title = sanitize_title(title)
    label = f"[{sanitize_title(prefix)}] - {safe_title}" if prefix else safe_title
    # hash the raw inputs: titles that sanitize alike still get their own key
    raw = f"{source_video_id}\0{prefix or ''}\0{title}"
    digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()
    return ClipIdentity(label=label, key=f"{_slug(label)}-{digest[:KEY_HASH_CHARS]}")


def _slug(text: str) -> str:
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = _SLUG_RE.sub("-", ascii_text.lower()).strip("-")
    return slug[:SLUG_MAX_CHARS].rstrip("-") or "clip"


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path
