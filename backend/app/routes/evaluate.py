# backend/app/routes/evaluate.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from ..deps import require_api_key
from ..schemas.evaluate import EvaluateRequest, EvaluateResponse
from ..schemas.highlight import DraftStats, DraftStatsRequest, ReviewResponse
from ..services import evaluator, highlight, sentences
from .highlight import to_out

router = APIRouter(prefix="", tags=["evaluate"], dependencies=[Depends(require_api_key)])

def _guard(req: EvaluateRequest) -> None:
    if not req.text or not req.text.strip():
        raise HTTPException(status_code=400, detail="Missing 'text'.")
    count = sentences.count_sentences(req.text)
    if count < sentences.MIN_SENTENCES:
        raise HTTPException(
            status_code=422,
            detail=f"Write at least {sentences.MIN_SENTENCES} sentences (found {count}).",
        )

@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate(req: EvaluateRequest) -> EvaluateResponse:
    _guard(req)
    return await evaluator.evaluate(req)

@router.post("/review", response_model=ReviewResponse)
async def review(req: EvaluateRequest) -> ReviewResponse:
    """Evaluate, then segment the submitted text by the returned issues."""
    _guard(req)
    result = await evaluator.evaluate(req)
    issues = [i.model_dump(mode="json") for i in result.issues]
    segments = highlight.segments_for(req.text, issues)
    return ReviewResponse(**result.model_dump(), segments=to_out(segments))

@router.post("/draft/stats", response_model=DraftStats)
def draft_stats(req: DraftStatsRequest) -> DraftStats:
    return DraftStats(**sentences.draft_stats(req.text))
