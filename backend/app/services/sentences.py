import os
import re

MIN_SENTENCES = int(os.getenv("MIN_SENTENCES", "3"))

_WS_RX = re.compile(r"\s+")
_BREAK_RX = re.compile(r"[.!?]+\s+")

def count_sentences(text: str) -> int:
    # naive: split on terminal punctuation followed by whitespace
    parts = [p for p in _BREAK_RX.split(_WS_RX.sub(" ", text or "").strip()) if p]
    return len(parts)

def draft_stats(text: str, minimum: int | None = None) -> dict:
    """Sentence count, submission threshold and the 0-100 progress meter value."""
    minimum = MIN_SENTENCES if minimum is None else max(0, minimum)
    count = count_sentences(text)
    progress = 100 if minimum == 0 else min(100, round(count / minimum * 100))
    return {
        "sentences": count,
        "minimum": minimum,
        "ready": count >= minimum,
        "progress": progress,
    }
