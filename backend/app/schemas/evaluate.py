from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal
from .common import IssueType

DEFAULT_GOALS = ["tell day", "feelings", "next action"]
DEFAULT_LEVEL = "simple_ENGLISH_B1"

class Issue(BaseModel):
    type: IssueType
    start: int
    end: int
    tip: str | None = None

class TipExample(BaseModel):
    before: str
    after: str

class Tip(BaseModel):
    title: str   # what's the issue, in plain language
    why: str     # why it matters, one sentence
    examples: List[TipExample] = []

class AfterPart(BaseModel):
    text: str
    bold: bool = False

class ExamplePair(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    before: str
    after_parts: List[AfterPart] = Field(alias="afterParts")

class EvalResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    issues: List[Issue] = []
    top_tips: List[Tip] = Field(default=[], alias="topTips")
    example: ExamplePair | None = None

class EvaluateRequest(BaseModel):
    text: str = ""
    locale: str = "en"
    goals: List[str] = Field(default_factory=lambda: list(DEFAULT_GOALS))
    level: str = DEFAULT_LEVEL

class EvaluateResponse(EvalResult):
    source: Literal["model", "fallback"] = "model"
    notice: str | None = None
