"""Pure preference transforms driven by explicit user actions.

Explicit feedback buttons map to rule text only; sliders are never moved
from here. Also: decision statistics and promoting a document's learned
preferences into a reusable audience overlay.
"""

from uuid import uuid4

from app.core.bounds import clamp, round_half_away
from app.core.logging import get_logger
from app.core.schemas_document import (
    DocumentPreferences,
    EditDecision,
    EditDecisionType,
    EditExample,
    EditStats,
    FeedbackCategory,
)
from app.core.schemas_style import AudienceOverlay, HedgingStyle, LearnedRule, RuleSource, Verbosity

logger = get_logger(__name__)

EXPLICIT_RULE_CONFIDENCE = 0.85
EXPLICIT_RULE_BOOST = 0.15
EXPLICIT_RULE_CAP = 0.95
# Leading characters of a rule used for the near-duplicate check
DUPLICATE_PREFIX_CHARS = 20

FEEDBACK_RULES: dict[FeedbackCategory, str] = {
    FeedbackCategory.TOO_FORMAL: "Use a more casual, conversational tone",
    FeedbackCategory.TOO_CASUAL: "Maintain a more formal, professional tone",
    FeedbackCategory.TOO_VERBOSE: "Be more concise - cut unnecessary words",
    FeedbackCategory.TOO_TERSE: "Provide more detail and explanation",
    FeedbackCategory.CHANGED_MEANING: "NEVER change the core meaning or argument - only style",
    FeedbackCategory.OVER_EDITED: "Make MINIMAL changes - preserve original phrasing where possible",
    FeedbackCategory.WRONG_TONE: "Match the original tone and voice more closely",
    FeedbackCategory.BAD_WORD_CHOICE: "Preserve domain-specific terminology and word choices",
    FeedbackCategory.LOST_NUANCE: "Preserve subtle distinctions and nuanced language",
}


def _find_similar_rule(rules: list[LearnedRule], rule_text: str) -> int | None:
    prefix = rule_text.lower()[:DUPLICATE_PREFIX_CHARS]
    for i, existing in enumerate(rules):
        if prefix in existing.rule.lower():
            return i
    return None


def learn_from_explicit_feedback(
    preferences: DocumentPreferences,
    feedback: list[FeedbackCategory],
    suggested_edit: str,
    user_version: str,
    instruction: str | None = None,
) -> DocumentPreferences:
    """
    Turn feedback buttons into high-confidence rules plus one stored example.

    Args:
        preferences: Current document preferences (not mutated)
        feedback: Selected feedback categories
        suggested_edit: The suggestion the feedback refers to
        user_version: What the user ended up with
        instruction: Instruction that produced the suggestion, if any

    Returns:
        New DocumentPreferences
    """
    adjustments = preferences.adjustments.model_copy(deep=True)
    rules = list(adjustments.learned_rules)

    for category in feedback:
        rule_text = FEEDBACK_RULES.get(category)
        if not rule_text:
            continue

        similar = _find_similar_rule(rules, rule_text)
        if similar is not None:
            existing = rules[similar]
            rules[similar] = existing.model_copy(
                update={"confidence": min(EXPLICIT_RULE_CAP, existing.confidence + EXPLICIT_RULE_BOOST)}
            )
        else:
            rules.append(
                LearnedRule(
                    rule=rule_text,
                    confidence=EXPLICIT_RULE_CONFIDENCE,
                    source=RuleSource.EXPLICIT,
                )
            )

    adjustments.learned_rules = rules
    adjustments.edit_examples = [
        *adjustments.edit_examples,
        EditExample(
            suggested_edit=suggested_edit,
            user_version=user_version,
            instruction=instruction,
            feedback=feedback,
        ),
    ]

    logger.info(
        f"Applied explicit feedback {[c.value for c in feedback]} "
        f"to {preferences.document_id}: rules={len(rules)}"
    )
    return preferences.touched(adjustments=adjustments)


def get_edit_stats(history: list[EditDecision]) -> EditStats:
    """Decision counts; a partial acceptance counts half towards the acceptance rate."""
    total = len(history)
    accepted = sum(1 for d in history if d.decision is EditDecisionType.ACCEPTED)
    rejected = sum(1 for d in history if d.decision is EditDecisionType.REJECTED)
    partial = sum(1 for d in history if d.decision is EditDecisionType.PARTIAL)
    return EditStats(
        total=total,
        accepted=accepted,
        rejected=rejected,
        partial=partial,
        acceptance_rate=(accepted + partial * 0.5) / total if total else 0.0,
    )


_VERBOSITY_SCALE = [Verbosity.TERSE, Verbosity.MODERATE, Verbosity.DETAILED]
_HEDGING_SCALE = [HedgingStyle.CONFIDENT, HedgingStyle.BALANCED, HedgingStyle.CAUTIOUS]


def _scale_step(scale: list, adjust: float):
    # Middle of the scale shifted by the rounded slider
    return scale[int(clamp(1 + round_half_away(adjust), 0, len(scale) - 1))]


def merge_to_overlay(preferences: DocumentPreferences, name: str) -> AudienceOverlay:
    """Build a new audience overlay from a document's learned adjustments."""
    if not name or not name.strip():
        raise ValueError("Overlay name is required")

    adj = preferences.adjustments
    overrides: dict = {}
    if adj.verbosity_adjust != 0:
        overrides["verbosity"] = _scale_step(_VERBOSITY_SCALE, adj.verbosity_adjust).value
    if adj.formality_adjust != 0:
        overrides["formality_level"] = int(clamp(3 + round_half_away(adj.formality_adjust), 1, 5))
    if adj.hedging_adjust != 0:
        overrides["hedging_style"] = _scale_step(_HEDGING_SCALE, adj.hedging_adjust).value
    if adj.additional_avoid_words:
        overrides["avoid_words"] = list(adj.additional_avoid_words)
    if adj.additional_prefer_words:
        overrides["preferred_words"] = dict(adj.additional_prefer_words)
    if adj.learned_rules:
        overrides["learned_rules"] = [
            r.model_copy(update={"source": RuleSource.DOCUMENT}).model_dump(mode="json")
            for r in adj.learned_rules
        ]

    return AudienceOverlay(
        id=f"profile-{uuid4().hex[:12]}",
        name=name.strip(),
        description="Profile created from document preferences",
        framing_guidance=list(adj.additional_framing_guidance),
        overrides=overrides,
    )
