"""
Pydantic schemas for the Roast API.

RoastResult is the feedback record the language model returns and the
PDF report consumes. Its field names ("roast"/"fix") match the JSON the
model is prompted to produce, so stored rows validate without mapping.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

MAX_LIST_ITEMS = 5


class RoastPair(BaseModel):
    """A critique ("roast") and the actionable remedy ("fix") for it."""
    roast: str = ""
    fix: str = ""

    @field_validator("roast", "fix", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        return "" if value is None else value


class RoastResult(BaseModel):
    """Structured feedback for one resume."""
    overall_score: Optional[int] = Field(None, ge=0, le=100)
    one_liner: str = ""
    first_impression: RoastPair = Field(default_factory=RoastPair)
    skills_section: RoastPair = Field(default_factory=RoastPair)
    work_experience: RoastPair = Field(default_factory=RoastPair)
    red_flags: list[RoastPair] = Field(default_factory=list)
    top_fixes: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("overall_score", mode="before")
    @classmethod
    def round_score(cls, value):
        # Models sometimes answer 72.5; the report shows whole numbers.
        if isinstance(value, float):
            return round(value)
        return value

    @field_validator("one_liner", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("first_impression", "skills_section", "work_experience", mode="before")
    @classmethod
    def none_to_pair(cls, value):
        return {} if value is None else value

    @field_validator("red_flags", "top_fixes", mode="before")
    @classmethod
    def cap_list(cls, value):
        if value is None:
            return []
        return list(value)[:MAX_LIST_ITEMS]


class RoastCreateResponse(BaseModel):
    """Returned after a resume has been roasted."""
    id: UUID


class RoastSummary(BaseModel):
    """One row of the user's roast history."""
    id: UUID
    created_at: datetime
    score: Optional[int] = None
    status: str
    one_liner: Optional[str] = None


class RoastListResponse(BaseModel):
    roasts: list[RoastSummary]


class RoastResponse(BaseModel):
    """Full roast record."""
    id: UUID
    status: str
    score: Optional[int] = None
    result_json: Optional[dict] = None
    created_at: datetime

    model_config = {"from_attributes": True}
