import pytest

from clip_forge.domain.errors import InvalidRequest
from clip_forge.domain.models import ClipRequest
from clip_forge.utils.paths import build_clip_identity, sanitize_title


def test_sanitize_title_removes_path_hostile_characters():
    sanitized = sanitize_title('A/B: Test?')

    assert not any(ch in sanitized for ch in '/\\:*?"<>|')
    assert sanitized == "A-B- Test-"


def test_sanitize_title_never_returns_empty():
    assert sanitize_title("   ") == "clip"


def test_identity_label_includes_prefix_and_key_is_stable():
    first = build_clip_identity("vid123", "¿Qué pasó?", prefix="T2E5")
    second = build_clip_identity("vid123", "¿Qué pasó?", prefix="T2E5")

    assert first == second
    assert first.label == "[T2E5] - ¿Qué pasó-"
    assert first.key.startswith("t2e5-que-paso-")
    assert len(first.key.rsplit("-", 1)[1]) == 10


def test_identity_key_differs_for_same_title_on_other_source():
    assert build_clip_identity("a", "Title").key != build_clip_identity("b", "Title").key


def test_clip_request_derives_duration():
    request = ClipRequest.build("vid", "t", 100, 130, duration=30)
    assert request.duration == 30.0


@pytest.mark.parametrize(
    ("start", "end", "duration"),
    [(-1, 10, None), (10, 10, None), (20, 10, None), (0, 30, 25), ("abc", 10, None)],
)
def test_clip_request_rejects_bad_ranges(start, end, duration):
    with pytest.raises(InvalidRequest):
        ClipRequest.build("vid", "t", start, end, duration=duration)


def test_clip_request_requires_title_and_source():
    with pytest.raises(InvalidRequest):
        ClipRequest.build("", "t", 0, 10)
    with pytest.raises(InvalidRequest):
        ClipRequest.build("vid", "  ", 0, 10)


def test_titles_that_sanitize_alike_get_distinct_keys():
    slash = build_clip_identity("vid", "A/B")
    colon = build_clip_identity("vid", "A:B")

    assert slash.label == colon.label
    assert slash.key != colon.key
