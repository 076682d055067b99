"""Pydantic schemas for the global style profile and audience overlays."""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.core.bounds import CONFIDENCE_MAX, CONFIDENCE_MIN, FORMALITY_MAX, FORMALITY_MIN, clamp


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Enumerations
# =============================================================================


class Verbosity(str, Enum):
    TERSE = "terse"
    MODERATE = "moderate"
    DETAILED = "detailed"


class HedgingStyle(str, Enum):
    CONFIDENT = "confident"
    BALANCED = "balanced"
    CAUTIOUS = "cautious"


class FormatRule(str, Enum):
    """Formatting elements that can be banned or required."""

    EMOJI = "emoji"
    EM_DASH = "em-dash"
    EXCLAMATION = "exclamation"
    HEADERS = "headers"
    BULLET_POINTS = "bullet-points"
    BOLD = "bold"
    ITALICS = "italics"
    CODE_BLOCKS = "code-blocks"
    NUMBERED = "numbered"


class RuleSource(str, Enum):
    EXPLICIT = "explicit"
    INFERRED = "inferred"
    DOCUMENT = "document"


class JargonLevel(str, Enum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    HEAVY = "heavy"


class LengthTarget(str, Enum):
    CONCISE = "concise"
    STANDARD = "standard"
    COMPREHENSIVE = "comprehensive"


# =============================================================================
# Learned rules
# =============================================================================


class LearnedRule(BaseModel):
    """A natural-language style directive learned from user behaviour."""

    rule: str
    confidence: float = 0.6
    source: RuleSource = RuleSource.INFERRED
    timestamp: str = Field(default_factory=utc_now_iso)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        try:
            return clamp(float(v), CONFIDENCE_MIN, CONFIDENCE_MAX)
        except (TypeError, ValueError):
            return 0.5


# =============================================================================
# Style profile + audience overlay
# =============================================================================


class StyleProfile(BaseModel):
    """Global writing preferences. Changed only by explicit user settings."""

    verbosity: Verbosity = Verbosity.MODERATE
    formality_level: float = 3
    hedging_style: HedgingStyle = HedgingStyle.BALANCED
    avoid_words: list[str] = Field(default_factory=list)
    preferred_words: dict[str, str] = Field(default_factory=dict)
    format_bans: list[FormatRule | str] = Field(default_factory=list)
    required_formats: list[FormatRule | str] = Field(default_factory=list)
    transition_phrases: list[str] = Field(default_factory=list)
    learned_rules: list[LearnedRule] = Field(default_factory=list)

    @field_validator("formality_level", mode="before")
    @classmethod
    def _clamp_formality(cls, v: Any) -> float:
        # Document-adjusted levels may sit between the integer steps
        try:
            level = float(v)
        except (TypeError, ValueError):
            return 3
        if not math.isfinite(level):
            return 3
        return clamp(level, FORMALITY_MIN, FORMALITY_MAX)


class LengthGuidance(BaseModel):
    target: LengthTarget = LengthTarget.STANDARD
    max_words: int | None = None


class AudienceOverlay(BaseModel):
    """Named audience overlay merged onto the style profile for a session.

    ``overrides`` may carry any StyleProfile field, but verbosity, formality
    and hedging are always taken from the document-adjusted style.
    """

    id: str
    name: str
    description: str = ""
    jargon_level: JargonLevel = JargonLevel.MODERATE
    discipline_terms: list[str] = Field(default_factory=list)
    emphasis_points: list[str] = Field(default_factory=list)
    framing_guidance: list[str] = Field(default_factory=list)
    length_guidance: LengthGuidance | None = None
    overrides: dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)
