# backend/app/services/evaluator.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from ..schemas.common import IssueType
from ..schemas.evaluate import EvalResult, EvaluateRequest, EvaluateResponse, ExamplePair, Issue, Tip
from . import llm
from .fallback import mock_evaluate

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a patient writing coach for ESL/B1 learners. Evaluate short daily reflections. "
    "Return JSON with 'issues' (typed spans), 'topTips' (succinct), and one 'example' rewrite "
    "with parts marked bold where changed. Keep tone positive. Prioritize clarity over grammar jargon."
)

FALLBACK_NOTICE = (
    "Using demo feedback because the evaluation service is not available right now."
)

_STR = {"type": "string"}

EVAL_RESULT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["issues", "topTips"],
    "properties": {
        "issues": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["type", "start", "end"],
                "properties": {
                    "type": {"type": "string", "enum": [t.value for t in IssueType]},
                    "start": {"type": "integer"},
                    "end": {"type": "integer"},
                    "tip": _STR,
                },
            },
        },
        "topTips": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["title", "why", "examples"],
                "properties": {
                    "title": _STR,
                    "why": _STR,
                    "examples": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["before", "after"],
                            "properties": {"before": _STR, "after": _STR},
                        },
                    },
                },
            },
        },
        "example": {
            "type": "object",
            "required": ["before", "afterParts"],
            "properties": {
                "before": _STR,
                "afterParts": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["text"],
                        "properties": {"text": _STR, "bold": {"type": "boolean"}},
                    },
                },
            },
        },
    },
}


def _decode_list(items: Any, model, label: str) -> List[Any]:
    if items is None:
        return []
    if not isinstance(items, list):
        logger.warning("dropping %s: expected a list, got %s", label, type(items).__name__)
        return []
    out = []
    for i, raw in enumerate(items):
        try:
            out.append(model.model_validate(raw))
        except ValidationError as e:
            logger.warning("dropping %s #%d: %s", label, i, e.errors()[0].get("msg", e))
    return out


def decode_eval_result(payload: Any) -> EvalResult:
    """
    Decode the model's JSON into an EvalResult at the boundary.
    Bad issues/tips are dropped one by one; a bad example becomes None.
    Raises ValueError when the payload is not an object at all.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"evaluation payload must be an object, got {type(payload).__name__}")

    issues = _decode_list(payload.get("issues"), Issue, "issue")
    tips = _decode_list(payload.get("topTips"), Tip, "tip")

    example = None
    if payload.get("example") is not None:
        try:
            example = ExamplePair.model_validate(payload["example"])
        except ValidationError as e:
            logger.warning("dropping example rewrite: %s", e.errors()[0].get("msg", e))

    return EvalResult(issues=issues, top_tips=tips, example=example)


def _user_message(req: EvaluateRequest) -> str:
    return json.dumps({
        "text": req.text,
        "locale": req.locale or "en",
        "goals": req.goals,
        "target_level": req.level,
    })


async def evaluate(req: EvaluateRequest) -> EvaluateResponse:
    """
    Evaluate a reflection with the model.
    Upstream failures never surface as errors: the local fallback result is
    returned instead, flagged with source="fallback" and a notice.
    """
    try:
        payload = await llm.complete_json(SYSTEM_PROMPT, _user_message(req), EVAL_RESULT_SCHEMA)
        result = decode_eval_result(payload)
    except (llm.LLMError, ValueError) as e:
        logger.warning("falling back to local evaluation: %s: %s", type(e).__name__, e)
        result = mock_evaluate(req.text)
        return EvaluateResponse(**result.model_dump(), source="fallback", notice=FALLBACK_NOTICE)

    return EvaluateResponse(**result.model_dump(), source="model")
