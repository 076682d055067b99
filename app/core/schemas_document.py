"""Pydantic schemas for per-document preferences and edit decisions."""

from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.bounds import (
    EXAMPLE_SNIPPET_CHARS,
    MAX_AVOID_WORDS,
    MAX_EDIT_EXAMPLES,
    clamp_slider,
    dedupe_capped,
)
from app.core.schemas_style import LearnedRule, utc_now_iso


class EditDecisionType(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PARTIAL = "partial"


class FeedbackCategory(str, Enum):
    """Explicit feedback buttons offered when a suggestion is rejected."""

    TOO_FORMAL = "too_formal"
    TOO_CASUAL = "too_casual"
    TOO_VERBOSE = "too_verbose"
    TOO_TERSE = "too_terse"
    CHANGED_MEANING = "changed_meaning"
    OVER_EDITED = "over_edited"
    WRONG_TONE = "wrong_tone"
    BAD_WORD_CHOICE = "bad_word_choice"
    LOST_NUANCE = "lost_nuance"
    OTHER = "other"


# =============================================================================
# Goals and intent
# =============================================================================


class DocumentGoals(BaseModel):
    """Synthesised (or user-edited) aims of a document."""

    summary: str = ""
    objectives: list[str] = Field(default_factory=list)
    main_argument: str | None = None
    audience_needs: str | None = None
    success_criteria: str | None = None
    updated_at: str = Field(default_factory=utc_now_iso)
    user_edited: bool = False
    locked: bool = False


class ParagraphIntent(BaseModel):
    """What a single paragraph is trying to accomplish. Not persisted."""

    purpose: str
    connection_to_previous: str | None = None
    connection_to_next: str | None = None
    role_in_goals: str | None = None


# =============================================================================
# Adjustments
# =============================================================================


class EditExample(BaseModel):
    """Truncated before/after pair kept for later pattern aggregation."""

    id: str = Field(default_factory=lambda: f"ex-{uuid4().hex[:12]}")
    suggested_edit: str
    user_version: str
    instruction: str | None = None
    feedback: list[FeedbackCategory] = Field(default_factory=list)
    timestamp: str = Field(default_factory=utc_now_iso)

    @field_validator("suggested_edit", "user_version", mode="before")
    @classmethod
    def _truncate(cls, v: Any) -> str:
        return str(v or "")[:EXAMPLE_SNIPPET_CHARS]


class DocumentAdjustments(BaseModel):
    """Mutable per-document preference deltas layered over the style profile."""

    model_config = ConfigDict(validate_assignment=True)

    verbosity_adjust: float = 0.0
    formality_adjust: float = 0.0
    hedging_adjust: float = 0.0
    additional_avoid_words: list[str] = Field(default_factory=list)
    additional_prefer_words: dict[str, str] = Field(default_factory=dict)
    additional_framing_guidance: list[str] = Field(default_factory=list)
    learned_rules: list[LearnedRule] = Field(default_factory=list)
    edit_examples: list[EditExample] = Field(default_factory=list)
    document_goals: DocumentGoals | None = None

    @field_validator("verbosity_adjust", "formality_adjust", "hedging_adjust", mode="before")
    @classmethod
    def _clamp_slider(cls, v: Any) -> float:
        try:
            return clamp_slider(float(v))
        except (TypeError, ValueError):
            return 0.0

    @field_validator("additional_avoid_words", mode="before")
    @classmethod
    def _cap_avoid_words(cls, v: Any) -> list[str]:
        return dedupe_capped([str(w) for w in (v or [])], MAX_AVOID_WORDS)

    @field_validator("edit_examples")
    @classmethod
    def _cap_examples(cls, v: list[EditExample]) -> list[EditExample]:
        return v[-MAX_EDIT_EXAMPLES:]


# =============================================================================
# Decisions + persisted record
# =============================================================================


class EditDecision(BaseModel):
    """Immutable record of what the user did with a suggestion."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"decision-{uuid4().hex[:12]}")
    paragraph_index: int | None = None
    original_text: str
    suggested_edit: str
    final_text: str
    decision: EditDecisionType
    instruction: str | None = None
    feedback_tags: list[FeedbackCategory] = Field(default_factory=list)
    timestamp: str = Field(default_factory=utc_now_iso)


class DocumentPreferences(BaseModel):
    """The persisted preference record, one per document id."""

    document_id: str
    base_profile_id: str | None = None
    adjustments: DocumentAdjustments = Field(default_factory=DocumentAdjustments)
    edit_history: list[EditDecision] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    def touched(self, **updates: Any) -> "DocumentPreferences":
        """Copy with updates applied and a fresh updated_at."""
        return self.model_copy(update={**updates, "updated_at": utc_now_iso()})


class EditStats(BaseModel):
    total: int = 0
    accepted: int = 0
    rejected: int = 0
    partial: int = 0
    acceptance_rate: float = 0.0
