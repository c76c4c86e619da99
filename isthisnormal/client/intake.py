"""
Client-side intake for symptom questions.

Mirrors what the web form does before anything leaves the device: reject
empty input, route crisis language to the emergency view, require consent,
then call the analysis service exactly once per submission.
"""
from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import httpx
from pydantic import ValidationError

from isthisnormal.schemas.symptoms import SYMPTOM_TEXT_MAX_LENGTH, SymptomAnalysis, SymptomQuery

logger = logging.getLogger("isthisnormal")

CRISIS_PHRASES: Tuple[str, ...] = (
    "suicide",
    "kill myself",
    "end my life",
    "self-harm",
    "hurt myself",
    "don't want to live",
    "want to die",
)

DEFAULT_FAILURE_MESSAGE = "Failed to analyze symptom"


@dataclass(frozen=True)
class WellnessTip:
    title: str
    description: str


WELLNESS_TIPS: Tuple[WellnessTip, ...] = (
    WellnessTip(
        "Practice Deep Breathing",
        "Try the 4-7-8 technique: breathe in for 4 seconds, hold for 7, exhale for 8. "
        "This activates your body's relaxation response.",
    ),
    WellnessTip(
        "Ground Yourself",
        "Use the 5-4-3-2-1 method: notice 5 things you see, 4 you can touch, 3 you hear, "
        "2 you smell, and 1 you taste.",
    ),
    WellnessTip(
        "Move Your Body",
        "Even a short 10-minute walk can boost your mood by releasing endorphins and "
        "reducing stress hormones.",
    ),
    WellnessTip(
        "Stay Hydrated",
        "Dehydration can worsen anxiety and fatigue. Aim for 8 glasses of water daily to "
        "support your mental clarity.",
    ),
    WellnessTip(
        "Connect with Someone",
        "Reach out to a friend, family member, or colleague. Social connection is one of "
        "the most powerful ways to improve your mood.",
    ),
    WellnessTip(
        "Limit Screen Time Before Bed",
        "Blue light disrupts sleep. Try to avoid screens 1 hour before bedtime for better "
        "rest and mental health.",
    ),
)


class IntakeState(str, enum.Enum):
    READY = "ready"
    SUBMITTING = "submitting"


class IntakeValidationError(ValueError):
    """Input rejected locally; the message is meant for the user."""


class SubmissionInProgress(RuntimeError):
    pass


class AnalysisRequestError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class EmergencyRedirect:
    matched_phrase: str
    wellness_tips: Tuple[WellnessTip, ...] = WELLNESS_TIPS


@dataclass(frozen=True)
class AnalysisReady:
    query: SymptomQuery
    analysis: SymptomAnalysis


@dataclass(frozen=True)
class SubmissionFailed:
    message: str


SubmitOutcome = Union[EmergencyRedirect, AnalysisReady, SubmissionFailed]


# keyboard variants of ' and - mapped onto the plain forms used in CRISIS_PHRASES
_PUNCT_FOLD = str.maketrans({
    "\u2018": "'",
    "\u2019": "'",
    "\u02bc": "'",
    "\u2032": "'",
    "\u2010": "-",
    "\u2011": "-",
})


def find_crisis_phrase(text: str) -> Optional[str]:
    low = (text or "").translate(_PUNCT_FOLD).lower()
    for phrase in CRISIS_PHRASES:
        if phrase in low:
            return phrase
    return None


class AnalysisServiceClient:
    """Thin wrapper over POST /analyze-symptom.

    Any httpx.Client works, including FastAPI's TestClient.
    """

    def __init__(self, http: httpx.Client, path: str = "/analyze-symptom"):
        self.http = http
        self.path = path

    def analyze(self, query: SymptomQuery) -> SymptomAnalysis:
        try:
            r = self.http.post(self.path, json=query.to_request_body())
        except httpx.HTTPError as e:
            logger.warning({"function": "analyze_client", "error": type(e).__name__})
            raise AnalysisRequestError(DEFAULT_FAILURE_MESSAGE) from e

        try:
            data = r.json()
        except ValueError:
            data = None

        if isinstance(data, dict) and data.get("error"):
            raise AnalysisRequestError(str(data["error"]), r.status_code)
        if r.status_code != 200 or not isinstance(data, dict):
            raise AnalysisRequestError(DEFAULT_FAILURE_MESSAGE, r.status_code)
        try:
            return SymptomAnalysis.model_validate(data)
        except ValidationError as e:
            raise AnalysisRequestError(DEFAULT_FAILURE_MESSAGE, r.status_code) from e


class IntakeGate:
    def __init__(self, service: AnalysisServiceClient):
        self.service = service
        self._lock = threading.Lock()
        self._state = IntakeState.READY

    @property
    def state(self) -> IntakeState:
        return self._state

    def submit(
        self,
        text: str,
        body_area: Optional[str] = None,
        duration: Optional[str] = None,
        age_range: Optional[str] = None,
        consented: bool = False,
    ) -> SubmitOutcome:
        """Run one submission through the local checks and, if clear, the service.

        Raises IntakeValidationError for empty text or missing consent, and
        SubmissionInProgress if another submission has not resolved yet.
        """
        trimmed = (text or "").strip()
        if not trimmed:
            raise IntakeValidationError("Please describe your symptom")

        # crisis routing wins over every other check, consent included
        phrase = find_crisis_phrase(trimmed)
        if phrase is not None:
            logger.info({"function": "intake_submit", "outcome": "emergency"})
            return EmergencyRedirect(matched_phrase=phrase)

        if not consented:
            raise IntakeValidationError("Please accept the disclaimer before continuing")
        if len(trimmed) > SYMPTOM_TEXT_MAX_LENGTH:
            raise IntakeValidationError(
                f"Please keep your description under {SYMPTOM_TEXT_MAX_LENGTH} characters"
            )

        if not self._lock.acquire(blocking=False):
            raise SubmissionInProgress("A submission is already in progress")
        self._state = IntakeState.SUBMITTING
        try:
            query = SymptomQuery(
                text=trimmed,
                body_area=body_area or None,
                duration=duration or None,
                age_range=age_range or None,
            )
            try:
                analysis = self.service.analyze(query)
            except AnalysisRequestError as e:
                logger.info({"function": "intake_submit", "outcome": "failed", "status": e.status_code})
                return SubmissionFailed(e.message)
            return AnalysisReady(query=query, analysis=analysis)
        finally:
            self._state = IntakeState.READY
            self._lock.release()


__all__ = [
    "CRISIS_PHRASES",
    "WELLNESS_TIPS",
    "WellnessTip",
    "IntakeState",
    "IntakeValidationError",
    "SubmissionInProgress",
    "AnalysisRequestError",
    "EmergencyRedirect",
    "AnalysisReady",
    "SubmissionFailed",
    "find_crisis_phrase",
    "AnalysisServiceClient",
    "IntakeGate",
]
