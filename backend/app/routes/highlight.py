# backend/app/routes/highlight.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from ..deps import require_api_key
from ..schemas.highlight import HighlightRequest, HighlightResponse, SegmentOut
from ..services import highlight

router = APIRouter(prefix="", tags=["highlight"], dependencies=[Depends(require_api_key)])

def to_out(segments) -> list[SegmentOut]:
    return [SegmentOut(text=s.text, type=s.kind, tip=s.note) for s in segments]

@router.post("/highlight", response_model=HighlightResponse)
def highlight_text(req: HighlightRequest) -> HighlightResponse:
    try:
        segments = highlight.segments_for(req.text, req.issues)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Segmentation failed: {type(e).__name__}: {e}")
    return HighlightResponse(segments=to_out(segments), dropped=highlight.count_dropped(req.issues))
