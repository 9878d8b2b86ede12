from pydantic import BaseModel, Field
from typing import Any, List
from .evaluate import EvaluateResponse

class HighlightRequest(BaseModel):
    text: str
    # left untyped so one bad entry is dropped instead of failing the request
    issues: List[Any] = []

class SegmentOut(BaseModel):
    text: str
    type: str  # IssueType value or "plain"
    tip: str | None = None

class HighlightResponse(BaseModel):
    segments: List[SegmentOut]
    dropped: int = 0

class ReviewResponse(EvaluateResponse):
    segments: List[SegmentOut] = []

class DraftStatsRequest(BaseModel):
    text: str = ""

class DraftStats(BaseModel):
    sentences: int
    minimum: int
    ready: bool
    progress: int = Field(ge=0, le=100)
