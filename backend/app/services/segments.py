# backend/app/services/segments.py
"""
Split a text into display segments from typed, possibly overlapping spans.

Each span contributes an open event at its start and a close event at its end.
Events are swept left to right; every time the sweep moves past text, that
stretch becomes one segment tagged with the most recently opened span that is
still open (or "plain"). Joining the segment texts gives back the input text.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence

from ..schemas.common import IssueType

logger = logging.getLogger(__name__)

PLAIN = "plain"


@dataclass(eq=False)
class Span:
    """A flagged region [start, end) of the original text.

    eq=False keeps identity semantics: two spans with equal fields are
    still different annotations.
    """
    kind: IssueType
    start: int
    end: int
    note: Optional[str] = None


@dataclass(frozen=True)
class Segment:
    text: str
    kind: str = PLAIN
    note: Optional[str] = None

    @property
    def is_plain(self) -> bool:
        return self.kind == PLAIN


class Boundary(NamedTuple):
    position: int
    slot: int  # index of the span in the caller's list
    span: Span
    is_open: bool


def _as_offset(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_kind(value: Any) -> Optional[IssueType]:
    if isinstance(value, IssueType):
        return value
    try:
        return IssueType(value)
    except (ValueError, TypeError):
        return None


def coerce_span(raw: Any) -> Optional[Span]:
    """
    Return a usable Span for `raw`, or None when it is malformed.

    Accepts a Span (returned as-is when valid, so identity survives) or a
    mapping shaped like the evaluator's issues: {"type", "start", "end", "tip"}.
    "kind" and "note" are accepted as alternative keys.
    """
    if isinstance(raw, Span):
        kind, start, end, note = raw.kind, raw.start, raw.end, raw.note
    elif isinstance(raw, Mapping):
        kind = raw.get("type", raw.get("kind"))
        start, end = raw.get("start"), raw.get("end")
        note = raw.get("tip", raw.get("note"))
    else:
        return None

    k = _as_kind(kind)
    s, e = _as_offset(start), _as_offset(end)
    if k is None or s is None or e is None:
        return None
    if note is not None and not isinstance(note, str):
        note = str(note)

    if isinstance(raw, Span) and k is raw.kind and s == raw.start and e == raw.end and note is raw.note:
        return raw
    return Span(kind=k, start=s, end=e, note=note)


def boundary_events(spans: Sequence[Any], length: int) -> List[Boundary]:
    """
    Two events per usable span, offsets clamped into [0, length].
    Spans that end up zero-width emit nothing, so they cannot split a segment.
    """
    events: List[Boundary] = []
    for slot, raw in enumerate(spans):
        span = coerce_span(raw)
        if span is None:
            logger.warning("dropping malformed annotation #%d: %r", slot, raw)
            continue
        start = min(max(span.start, 0), length)
        end = min(max(span.end, 0), length)
        if end <= start:
            # zero-width (or inverted, treated as zero-width at start): nothing to show
            logger.debug("skipping zero-width annotation #%d at %d", slot, start)
            continue
        events.append(Boundary(start, slot, span, True))
        events.append(Boundary(end, slot, span, False))
    return events


def sweep_order(events: Iterable[Boundary]) -> List[Boundary]:
    """Position ascending, opens before closes; sorted() is stable so input order breaks ties."""
    return sorted(events, key=lambda ev: (ev.position, 0 if ev.is_open else 1))


def _segment(text: str, start: int, end: int, active: Dict[int, Span]) -> Segment:
    if not active:
        return Segment(text=text[start:end])
    governing = active[next(reversed(active))]
    return Segment(text=text[start:end], kind=governing.kind.value, note=governing.note)


def build_segments(text: str, spans: Sequence[Any]) -> List[Segment]:
    """
    Partition `text` into non-overlapping segments.

    The active collection is keyed by the span's slot in `spans`, in opening
    order. Closing removes that entry wherever it sits, so crossing ranges
    like [0,10) and [5,15) are tracked correctly; the segment tag is the last
    entry still present.
    """
    length = len(text)
    active: Dict[int, Span] = {}
    segments: List[Segment] = []
    cursor = 0

    for ev in sweep_order(boundary_events(spans, length)):
        if ev.position > cursor:
            segments.append(_segment(text, cursor, ev.position, active))
            cursor = ev.position
        if ev.is_open:
            active[ev.slot] = ev.span
        else:
            active.pop(ev.slot, None)

    if cursor < length:
        segments.append(_segment(text, cursor, length, active))
    return segments
