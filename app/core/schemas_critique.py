"""Pydantic schemas for critique results."""

from enum import Enum

from pydantic import BaseModel, Field


class CritiqueIssueType(str, Enum):
    VERBOSITY = "verbosity"
    FORMALITY = "formality"
    WORD_CHOICE = "word_choice"
    STRUCTURE = "structure"
    TONE = "tone"
    HEDGING = "hedging"
    USER_FEEDBACK = "user_feedback"
    REJECTED_CHANGE = "rejected_change"


class CritiqueIssueSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"


class CritiqueIssue(BaseModel):
    type: CritiqueIssueType = CritiqueIssueType.STRUCTURE
    severity: CritiqueIssueSeverity = CritiqueIssueSeverity.MINOR
    description: str = ""


class CritiqueAnalysis(BaseModel):
    """How well a candidate edit matches the effective style. Never persisted."""

    alignment_score: float = Field(0.0, ge=0, le=1)
    predicted_acceptance: float = Field(0.0, ge=0, le=1)
    issues: list[CritiqueIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


# Optimistic fallback used when the evaluator's response cannot be decoded
DEFAULT_ALIGNMENT_SCORE = 0.7
DEFAULT_PREDICTED_ACCEPTANCE = 0.7


def default_critique() -> CritiqueAnalysis:
    return CritiqueAnalysis(
        alignment_score=DEFAULT_ALIGNMENT_SCORE,
        predicted_acceptance=DEFAULT_PREDICTED_ACCEPTANCE,
        issues=[],
        suggestions=[],
    )


def empty_critique() -> CritiqueAnalysis:
    """Starting point for the running best; any real critique replaces it."""
    return CritiqueAnalysis(alignment_score=0.0, predicted_acceptance=0.0)
