"""
Turn raw gateway text into a SymptomAnalysis.

The model is asked for bare JSON but often wraps it in a ```json fence. Any
content that still fails to decode or to match the schema is replaced by a
fixed reassurance analysis; callers can tell the two apart through the
outcome type, the HTTP payload cannot.
"""
from __future__ import annotations

import json
import logging
import random
import re
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import ValidationError

from isthisnormal.schemas.symptoms import (
    SIMILAR_QUESTIONS_MAX,
    SIMILAR_QUESTIONS_MIN,
    SymptomAnalysis,
)
from isthisnormal.utils.exceptions import ResponseFormatError

logger = logging.getLogger("isthisnormal")

_LEADING_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_TRAILING_FENCE = re.compile(r"\r?\n?[ \t]*```$")

FALLBACK_CONTENT = {
    "acknowledgement": (
        "Thank you for sharing this with us. It takes courage to ask about something that "
        "concerns you, and you're not alone in wondering about this."
    ),
    "commonality": (
        "Many people experience similar symptoms and have the same questions. It's completely "
        "normal to want to understand what your body is telling you."
    ),
    "possibleExplanations": [
        "Stress or anxiety, which can manifest in many physical ways",
        "Changes in sleep patterns or daily routine",
        "Dietary factors or hydration levels",
        "Normal bodily variations that most people experience",
        "Environmental factors like weather or seasonal changes",
    ],
    "usuallyOkayIf": [
        "The symptom is mild and doesn't significantly affect daily activities",
        "It comes and goes rather than being constant or worsening",
        "You're not experiencing other concerning symptoms alongside it",
        "It tends to improve with rest or basic self-care",
    ],
    "seekHelpIf": [
        "The symptom is severe or progressively getting worse",
        "It's accompanied by fever, severe pain, or difficulty breathing",
        "It significantly impacts your daily life, work, or sleep",
        "You have a gut feeling that something is seriously wrong",
    ],
    "selfCareSteps": [
        "Keep a journal noting when the symptom occurs and potential triggers",
        "Ensure you're getting adequate sleep and staying well-hydrated",
        "Try gentle relaxation techniques like deep breathing or meditation",
        "Consider whether recent stress might be playing a role",
        "Monitor for a few days before becoming overly concerned",
    ],
}


@dataclass(frozen=True)
class Parsed:
    analysis: SymptomAnalysis
    is_fallback = False


@dataclass(frozen=True)
class FallbackApplied:
    analysis: SymptomAnalysis
    error: ResponseFormatError
    is_fallback = True


ParseOutcome = Union[Parsed, FallbackApplied]


def strip_code_fence(content: str) -> str:
    """Remove one leading ``` (optionally language-tagged) and one trailing ```.

    Idempotent: unfenced text only loses surrounding whitespace.
    """
    s = content.strip()
    s = _LEADING_FENCE.sub("", s, count=1)
    s = _TRAILING_FENCE.sub("", s, count=1)
    return s.strip()


def decode_analysis(content: str) -> SymptomAnalysis:
    """Strict decode; raises ResponseFormatError on anything off-schema."""
    cleaned = strip_code_fence(content)
    try:
        data = json.loads(cleaned)
    except ValueError as e:
        raise ResponseFormatError(f"content is not valid JSON: {e.__class__.__name__}") from e
    if not isinstance(data, dict):
        raise ResponseFormatError(f"expected a JSON object, got {type(data).__name__}")
    try:
        return SymptomAnalysis.model_validate(data)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"][:1]) for err in e.errors()})
        raise ResponseFormatError(f"schema mismatch in: {', '.join(fields)}") from e


def fallback_analysis(rng: Optional[random.Random] = None) -> SymptomAnalysis:
    rng = rng or random
    data = dict(FALLBACK_CONTENT)
    data["similarQuestions"] = rng.randint(SIMILAR_QUESTIONS_MIN, SIMILAR_QUESTIONS_MAX)
    return SymptomAnalysis.model_validate(data)


def parse_analysis(content: str, rng: Optional[random.Random] = None) -> ParseOutcome:
    try:
        return Parsed(decode_analysis(content))
    except ResponseFormatError as e:
        logger.warning({"function": "parse_analysis", "outcome": "fallback", "reason": str(e)})
        return FallbackApplied(fallback_analysis(rng), e)


__all__ = [
    "FALLBACK_CONTENT",
    "Parsed",
    "FallbackApplied",
    "ParseOutcome",
    "strip_code_fence",
    "decode_analysis",
    "fallback_analysis",
    "parse_analysis",
]
