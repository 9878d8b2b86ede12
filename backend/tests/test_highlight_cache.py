from __future__ import annotations

import pytest

from backend.app.schemas.common import IssueType
from backend.app.services import highlight
from backend.app.services.segments import Span


@pytest.fixture(autouse=True)
def _fresh_cache():
    highlight.cache_clear()
    yield
    highlight.cache_clear()


def test_repeated_calls_hit_the_cache():
    issues = [{"type": "spell", "start": 0, "end": 3, "tip": "Spelling: 'the'."}]

    first = highlight.segments_for("Teh cat was nice.", issues)
    second = highlight.segments_for("Teh cat was nice.", [dict(issues[0])])

    assert first is second
    info = highlight.cache_info()
    assert (info.hits, info.misses) == (1, 1)


def test_changing_text_or_issues_recomputes():
    issues = [{"type": "grammar", "start": 0, "end": 1}]
    highlight.segments_for("i was here.", issues)
    highlight.segments_for("i was there.", issues)
    highlight.segments_for("i was there.", issues + [{"type": "spell", "start": 6, "end": 11}])

    assert highlight.cache_info().misses == 3


def test_cached_result_is_immutable():
    segments = highlight.segments_for("abc", [])
    assert isinstance(segments, tuple)
    with pytest.raises(AttributeError):
        segments[0].text = "changed"  # frozen dataclass


def test_count_dropped():
    issues = [
        {"type": "spell", "start": 0, "end": 2},
        {"type": "style", "start": 0, "end": 2},
        {"type": "grammar", "start": None, "end": 2},
        42,
    ]
    assert highlight.count_dropped(issues) == 3


def test_unhashable_garbage_is_tolerated():
    segments = highlight.segments_for("abcdef", [{"type": ["spell"], "start": {"x": 1}, "end": 3}])
    assert [(s.text, s.kind) for s in segments] == [("abcdef", "plain")]


def test_span_objects_and_mappings_agree():
    span = Span(kind=IssueType.spell, start=0, end=3, note="Spelling: 'the'.")
    issues = [span, {"type": "grammar", "start": 8, "end": 9}]

    segments = highlight.segments_for("Teh day i was tired.", issues)

    assert highlight.count_dropped(issues) == 0
    assert [(s.text, s.kind, s.note) for s in segments] == [
        ("Teh", "spell", "Spelling: 'the'."),
        (" day ", "plain", None),
        ("i", "grammar", None),
        (" was tired.", "plain", None),
    ]
    as_mapping = {"kind": "spell", "start": 0, "end": 3, "note": "Spelling: 'the'."}
    assert highlight.segments_for("Teh day i was tired.", [as_mapping, issues[1]]) is segments
