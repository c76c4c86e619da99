# isthisnormal/schemas/symptoms.py
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, constr

SYMPTOM_TEXT_MAX_LENGTH = 500
SIMILAR_QUESTIONS_MIN = 800
SIMILAR_QUESTIONS_MAX = 5000

BODY_AREAS = (
    "Head/Face", "Neck", "Chest", "Abdomen", "Back",
    "Arms/Hands", "Legs/Feet", "Skin", "Other",
)

DURATIONS = (
    "Just started", "Few hours", "Few days",
    "About a week", "Longer than a week",
)

AGE_RANGES = (
    "Under 18", "18-30", "31-45", "46-60", "Over 60",
)

NonEmptyStr = constr(strict=True, min_length=1)


class SymptomQuery(BaseModel):
    """One user question; built at submission time and never stored."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str = Field(..., min_length=1, max_length=SYMPTOM_TEXT_MAX_LENGTH)
    body_area: Optional[str] = Field(None, alias="bodyArea")
    duration: Optional[str] = None
    age_range: Optional[str] = Field(None, alias="ageRange")
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO-8601 submission time.",
    )

    def to_request_body(self) -> dict:
        """Wire body for POST /analyze-symptom; absent tags are omitted."""
        body = {"symptomText": self.text}
        if self.body_area:
            body["bodyArea"] = self.body_area
        if self.duration:
            body["duration"] = self.duration
        if self.age_range:
            body["ageRange"] = self.age_range
        return body


class SymptomAnalysis(BaseModel):
    """Reassurance-oriented answer for a single SymptomQuery.

    Strict on purpose: provider output that does not match this shape exactly
    is treated as unparseable and replaced by the fallback analysis.
    """

    model_config = ConfigDict(strict=True, populate_by_name=True, extra="ignore")

    acknowledgement: NonEmptyStr
    commonality: NonEmptyStr
    possible_explanations: List[StrictStr] = Field(
        ..., alias="possibleExplanations", min_length=4, max_length=5
    )
    usually_okay_if: List[StrictStr] = Field(
        ..., alias="usuallyOkayIf", min_length=4, max_length=4
    )
    seek_help_if: List[StrictStr] = Field(
        ..., alias="seekHelpIf", min_length=4, max_length=4
    )
    self_care_steps: List[StrictStr] = Field(
        ..., alias="selfCareSteps", min_length=5, max_length=5
    )
    similar_questions: StrictInt = Field(
        ..., alias="similarQuestions", ge=SIMILAR_QUESTIONS_MIN, le=SIMILAR_QUESTIONS_MAX
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


__all__ = [
    "BODY_AREAS",
    "DURATIONS",
    "AGE_RANGES",
    "SYMPTOM_TEXT_MAX_LENGTH",
    "SIMILAR_QUESTIONS_MIN",
    "SIMILAR_QUESTIONS_MAX",
    "SymptomQuery",
    "SymptomAnalysis",
]
