# backend/app/services/highlight.py
from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Optional, Sequence, Tuple

from ..schemas.common import IssueType
from .segments import Segment, Span, build_segments, coerce_span

logger = logging.getLogger(__name__)

CACHE_SIZE = int(os.getenv("HIGHLIGHT_CACHE_SIZE", "256"))

_SpanKey = Tuple[str, int, int, Optional[str]]


def _issues_key(issues: Sequence[Any]) -> Tuple[_SpanKey, ...]:
    """Hashable form of the usable issues, in input order; Spans and mappings alike."""
    key = []
    for slot, raw in enumerate(issues):
        span = coerce_span(raw)
        if span is None:
            logger.warning("dropping malformed annotation #%d: %r", slot, raw)
            continue
        key.append((span.kind.value, span.start, span.end, span.note))
    return tuple(key)


@lru_cache(maxsize=CACHE_SIZE)
def _cached(text: str, issues_key: Tuple[_SpanKey, ...]) -> Tuple[Segment, ...]:
    spans = [Span(IssueType(kind), start, end, note) for kind, start, end, note in issues_key]
    return tuple(build_segments(text, spans))


def segments_for(text: str, issues: Sequence[Any]) -> Tuple[Segment, ...]:
    """
    Segments for `text` highlighted by evaluator issues (mappings or Spans).
    Memoized on (text, issues); the tuple of frozen segments is safe to share.
    """
    return _cached(text, _issues_key(issues))


def count_dropped(issues: Sequence[Any]) -> int:
    return sum(1 for raw in issues if coerce_span(raw) is None)


def cache_info():
    return _cached.cache_info()


def cache_clear() -> None:
    _cached.cache_clear()
