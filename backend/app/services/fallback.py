"""
Local stand-in for the model's evaluation.

Used when the upstream call fails so the writer still sees highlights, tips
and an example rewrite. Rules are plain data: the built-in set below, or a
YAML file with the same structure named by FALLBACK_RULES_PATH.

    issues:
      - type: spell
        pattern: '\\bteh\\b'
        flags: i
        tip: "Spelling: 'the'."
      - type: clarity
        absent: '\\.'      # fires when the pattern never occurs
        span: 60           # flags the opening characters
        tip: Add clear sentence breaks.
    tips: [{title, why, examples: [{before, after}]}]
    example: {default_before, afterParts: [{text, bold}]}
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from ..schemas.evaluate import EvalResult, ExamplePair, Issue, Tip

logger = logging.getLogger(__name__)

_FIRST_SENTENCE_RX = re.compile(r"(?<=[.!?])")

BUILTIN_RULES: Dict[str, Any] = {
    "issues": [
        {"type": "grammar", "pattern": r"\bi\s+was\b", "flags": "i", "tip": "Capitalize ‘I’."},
        {"type": "spell", "pattern": r"\bteh\b", "flags": "i", "tip": "Spelling: ‘the’."},
        {"type": "clarity", "absent": r"\.", "span": 60, "tip": "Add clear sentence breaks."},
    ],
    "tips": [
        {
            "title": "Connect what happened to how you felt",
            "why": "Connecting events to feelings makes your story easier to understand.",
            "examples": [
                {
                    "before": "I finished my homework.",
                    "after": "I finished my homework, and I felt proud because it was hard.",
                }
            ],
        }
    ],
    "example": {
        "default_before": "today i was tired but i study",
        "afterParts": [
            {"text": "Today ", "bold": False},
            {"text": "I", "bold": True},
            {"text": " felt tired, but I finished science and ", "bold": False},
            {"text": "I", "bold": True},
            {"text": " will review vocab after dinner.", "bold": False},
        ],
    },
}


def _rx_flags(flags: str | None) -> int:
    out = 0
    for ch in (flags or "").lower():
        if ch == "i":
            out |= re.IGNORECASE
        elif ch == "m":
            out |= re.MULTILINE
        elif ch == "s":
            out |= re.DOTALL
    return out


def load_rules() -> Dict[str, Any]:
    configured = os.getenv("FALLBACK_RULES_PATH")
    if not configured:
        return BUILTIN_RULES
    rules_path = Path(configured).expanduser()
    if not rules_path.exists():
        logger.warning("FALLBACK_RULES_PATH=%s not found, using built-in rules", rules_path)
        return BUILTIN_RULES
    try:
        with rules_path.open("r", encoding="utf-8") as f:
            spec = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.warning("cannot parse %s (%s), using built-in rules", rules_path, e)
        return BUILTIN_RULES
    if not spec:
        return BUILTIN_RULES
    if not isinstance(spec, dict):
        logger.warning("%s must hold a mapping, got %s; using built-in rules", rules_path, type(spec).__name__)
        return BUILTIN_RULES
    return spec


def _apply_rule(rule: Dict[str, Any], text: str) -> Optional[Issue]:
    flags = _rx_flags(rule.get("flags"))
    if "pattern" in rule:
        m = re.search(rule["pattern"], text, flags)
        if not m:
            return None
        start, end = m.start(), m.end()
    elif "absent" in rule:
        if not text or re.search(rule["absent"], text, flags):
            return None
        start, end = 0, min(int(rule.get("span", len(text))), len(text))
    else:
        return None
    return Issue(type=rule["type"], start=start, end=end, tip=rule.get("tip"))


def _first_sentence(text: str) -> str:
    return _FIRST_SENTENCE_RX.split(text)[0] if text else ""


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("expected a list in fallback rules, got %s", type(value).__name__)
        return []
    return value


def _example(ex: Any, text: str) -> Optional[ExamplePair]:
    if not ex:
        return None
    if not isinstance(ex, dict):
        logger.warning("skipping fallback example: expected a mapping, got %s", type(ex).__name__)
        return None
    try:
        return ExamplePair(
            before=_first_sentence(text) or ex.get("default_before", ""),
            after_parts=ex.get("afterParts", []),
        )
    except ValidationError as e:
        logger.warning("skipping fallback example: %s", e.errors()[0].get("msg", e))
        return None


def mock_evaluate(text: str, rules: Dict[str, Any] | None = None) -> EvalResult:
    """An obviously local evaluation with the same shape as the model's."""
    spec = rules if rules is not None else load_rules()

    issues: List[Issue] = []
    for rule in _as_list(spec.get("issues")):
        try:
            issue = _apply_rule(rule, text)
        except (re.error, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning("skipping fallback rule %r: %s: %s", rule, type(e).__name__, e)
            continue
        if issue is not None:
            issues.append(issue)

    tips: List[Tip] = []
    for i, raw in enumerate(_as_list(spec.get("tips"))):
        try:
            tips.append(Tip.model_validate(raw))
        except ValidationError as e:
            logger.warning("skipping fallback tip #%d: %s", i, e.errors()[0].get("msg", e))

    return EvalResult(issues=issues, top_tips=tips, example=_example(spec.get("example"), text))
