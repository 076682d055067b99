"""Decision-based learning: update document sliders from a terminal user decision.

This is the only automatic path that moves the verbosity/formality/hedging
sliders. Raw model deltas are dampened, added, and clamped to [-2, 2].
Word-level lists are never touched here.
"""

from typing import Any

from app.chains.consolidate_rules import CONSOLIDATION_TRIGGER, consolidate_learned_rules
from app.context.prompt_compiler import compile_style_prompt
from app.core.bounds import SLIDER_MAX, SLIDER_MIN, clamp, clamp_slider, is_finite_number
from app.core.errors import CompletionServiceError
from app.core.llm import CompletionClient, completion_request, extract_json_object
from app.core.logging import get_logger
from app.core.schemas_document import DocumentPreferences, EditDecision, EditDecisionType
from app.core.schemas_style import AudienceOverlay, LearnedRule, RuleSource, StyleProfile

logger = get_logger(__name__)

LEARNING_TEMPERATURE = 0.2

# Fraction of the model's suggested delta actually applied
REJECTED_DAMPENING = 0.5
PARTIAL_DAMPENING = 0.35

REJECTED_RULE_CONFIDENCE = 0.8
DEFAULT_RULE_CONFIDENCE = 0.6

LEARN_SYSTEM = "You are a preference learning agent. Respond only with valid JSON."

LEARN_USER = """You are a preference learning agent. Analyze why a user {decision} an edit suggestion.

{style_prompt}

ORIGINAL TEXT:
{original_text}

SUGGESTED EDIT:
{suggested_edit}

USER'S DECISION: {decision}
{final_block}
{instruction_line}

Based on the difference between the suggested edit and what the user actually wanted, infer STYLE adjustments.

IMPORTANT: Do NOT learn specific word preferences. Word choices are CONTEXTUAL.
- Bad: "always use 'use' instead of 'utilize'" (too specific, context-dependent)
- Good: "prefers simpler, less formal word choices" (style pattern)
- Bad: "always say 'important' not 'significant'" (memorization)
- Good: "avoid unnecessarily academic vocabulary" (pattern)

Respond with a JSON object:
{{
  "verbosity_adjust": <-2 to +2, negative if user wanted shorter, positive if longer>,
  "formality_adjust": <-2 to +2, negative if user wanted less formal, positive if more formal>,
  "hedging_adjust": <-2 to +2, negative if user wanted more confident, positive if more cautious>,
  "learned_rule": "<a STYLE pattern rule, or null if nothing generalizable>"
}}

Rules should be about STYLE PATTERNS, not specific word substitutions.
Use 0 for adjustments you're not sure about.
Return ONLY the JSON object."""


def dampening_for(decision: EditDecisionType) -> float:
    return REJECTED_DAMPENING if decision is EditDecisionType.REJECTED else PARTIAL_DAMPENING


def dampened_slider(current: float, raw_delta: float, decision: EditDecisionType) -> float:
    """clamp(current + delta * k, -2, 2) with k chosen by decision type."""
    return clamp_slider(current + raw_delta * dampening_for(decision))


def _delta(parsed: dict[str, Any], key: str, camel_key: str) -> float:
    raw = parsed.get(key, parsed.get(camel_key))
    if not is_finite_number(raw):
        return 0.0
    return clamp(float(raw), SLIDER_MIN, SLIDER_MAX)


def append_to_history(preferences: DocumentPreferences, decision: EditDecision) -> DocumentPreferences:
    return preferences.touched(edit_history=[*preferences.edit_history, decision])


async def learn_from_decision(
    client: CompletionClient,
    decision: EditDecision,
    preferences: DocumentPreferences,
    style: StyleProfile,
    audience: AudienceOverlay | None = None,
) -> DocumentPreferences:
    """
    Return new preferences reflecting one accept/partial/reject decision.

    Args:
        client: Completion service
        decision: The user's terminal decision
        preferences: Current document preferences (not mutated)
        style: Global style profile, rendered for the learning prompt
        audience: Active audience overlay, if any

    Returns:
        New DocumentPreferences with the decision appended to history
    """
    if decision.decision is EditDecisionType.ACCEPTED and decision.suggested_edit == decision.final_text:
        logger.debug("Decision accepted verbatim, recording without learning")
        return append_to_history(preferences, decision)

    prompt = LEARN_USER.format(
        decision=decision.decision.value,
        style_prompt=compile_style_prompt(style, audience),
        original_text=decision.original_text,
        suggested_edit=decision.suggested_edit,
        final_block=(
            f"USER'S FINAL VERSION:\n{decision.final_text}"
            if decision.decision is not EditDecisionType.ACCEPTED
            else ""
        ),
        instruction_line=f"USER'S INSTRUCTION: {decision.instruction}" if decision.instruction else "",
    )

    try:
        result = await client.complete(
            completion_request(
                system=LEARN_SYSTEM,
                user=prompt,
                temperature=LEARNING_TEMPERATURE,
                chain="learn_from_decision",
            )
        )
    except CompletionServiceError as e:
        logger.error(f"Learning call failed, recording decision without adjustment: {e}")
        return append_to_history(preferences, decision)

    parsed = extract_json_object(result.content)
    if parsed is None:
        logger.warning("Learning response was not valid JSON, recording decision without adjustment")
        return append_to_history(preferences, decision)

    current = preferences.adjustments
    rules = list(current.learned_rules)
    learned_rule = parsed.get("learned_rule", parsed.get("learnedRule"))
    if isinstance(learned_rule, str) and learned_rule.strip():
        rules.append(
            LearnedRule(
                rule=learned_rule.strip(),
                confidence=(
                    REJECTED_RULE_CONFIDENCE
                    if decision.decision is EditDecisionType.REJECTED
                    else DEFAULT_RULE_CONFIDENCE
                ),
                source=RuleSource.INFERRED,
            )
        )
        if len(rules) >= CONSOLIDATION_TRIGGER:
            logger.info(f"Rules accumulated to {len(rules)}, triggering consolidation")
            rules = await consolidate_learned_rules(client, rules)

    adjustments = current.model_copy(deep=True)
    adjustments.verbosity_adjust = dampened_slider(
        current.verbosity_adjust, _delta(parsed, "verbosity_adjust", "verbosityAdjust"), decision.decision
    )
    adjustments.formality_adjust = dampened_slider(
        current.formality_adjust, _delta(parsed, "formality_adjust", "formalityAdjust"), decision.decision
    )
    adjustments.hedging_adjust = dampened_slider(
        current.hedging_adjust, _delta(parsed, "hedging_adjust", "hedgingAdjust"), decision.decision
    )
    adjustments.learned_rules = rules

    logger.info(
        f"Learned from {decision.decision.value} decision: "
        f"verbosity={adjustments.verbosity_adjust:.2f} formality={adjustments.formality_adjust:.2f} "
        f"hedging={adjustments.hedging_adjust:.2f} rules={len(rules)}"
    )
    return preferences.touched(
        adjustments=adjustments,
        edit_history=[*preferences.edit_history, decision],
    )
