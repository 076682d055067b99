"""Extract writing constraints from guideline text (grant calls, style guides).

The extracted sliders, word lists, framing guidance and rules can be merged
straight into a document's adjustments. This is an explicit user action,
so it is one of the few paths allowed to move the sliders.
"""

from typing import Any

from pydantic import BaseModel, Field

from app.core.bounds import MAX_AVOID_WORDS, clamp_slider, dedupe_capped, is_finite_number
from app.core.errors import InvalidInputError, UnusableModelOutputError
from app.core.llm import CompletionClient, completion_request, extract_json_object
from app.core.logging import get_logger
from app.core.schemas_document import DocumentAdjustments
from app.core.schemas_style import LearnedRule, RuleSource

logger = get_logger(__name__)

MIN_TEXT_CHARS = 50
MAX_TEXT_CHARS = 15000
EXTRACTION_TEMPERATURE = 0.2

MAX_EXTRACTED_GUIDANCE = 20
MAX_EXTRACTED_RULES = 30
MAX_FRAMING_GUIDANCE = 30
MAX_LEARNED_RULES = 50
CONSTRAINT_RULE_CONFIDENCE = 0.9
DEFAULT_SUMMARY = "Constraints extracted from provided text"

EXTRACTION_SYSTEM = """You are an expert at analyzing document requirements and guidelines.

Given text from a grant call, style guide, submission requirements or other instructional document, extract specific writing constraints and preferences:

1. VERBOSITY (-2 to +2): -2 extremely terse required, 0 no strong preference, +2 detailed/comprehensive required. Consider page limits, word counts and explicit length guidance.
2. FORMALITY (-2 to +2): -2 casual/conversational, 0 balanced, +2 highly formal/academic. Consider the audience and context.
3. HEDGING (-2 to +2): -2 bold, confident claims expected, 0 balanced, +2 cautious, qualified language expected.
4. WORDS TO AVOID: specific words or phrases that should not be used, if mentioned or implied.
5. WORD SUBSTITUTIONS: avoid -> prefer pairs for terminology, e.g. "utilize" -> "use".
6. FRAMING GUIDANCE: high-level constraints on framing, e.g. "Emphasize clinical relevance".
7. SPECIFIC RULES: concrete rules, e.g. "Use active voice", "Define acronyms on first use".

Respond with JSON only:
{
  "verbosity_adjust": <number>,
  "formality_adjust": <number>,
  "hedging_adjust": <number>,
  "avoid_words": ["<word>"],
  "prefer_words": {"<avoid>": "<prefer>"},
  "framing_guidance": ["<guidance>"],
  "rules": ["<rule>"],
  "summary": "<brief summary of what this document requires>"
}"""


class ExtractedConstraints(BaseModel):
    verbosity_adjust: float = 0.0
    formality_adjust: float = 0.0
    hedging_adjust: float = 0.0
    avoid_words: list[str] = Field(default_factory=list)
    prefer_words: dict[str, str] = Field(default_factory=dict)
    framing_guidance: list[str] = Field(default_factory=list)
    rules: list[str] = Field(default_factory=list)
    summary: str = DEFAULT_SUMMARY


def _slider(parsed: dict[str, Any], key: str, camel_key: str) -> float:
    raw = parsed.get(key, parsed.get(camel_key))
    return clamp_slider(float(raw)) if is_finite_number(raw) else 0.0


def _strings(raw: Any, cap: int) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [s.strip() for s in raw if isinstance(s, str) and s.strip()][:cap]


def _pairs(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    return {k: v for k, v in raw.items() if isinstance(k, str) and isinstance(v, str) and k and v}


def parse_constraints(raw_output: str) -> ExtractedConstraints:
    """Validate an extraction response field by field.

    Raises:
        UnusableModelOutputError: No JSON object could be decoded
    """
    parsed = extract_json_object(raw_output)
    if parsed is None:
        raise UnusableModelOutputError("Constraint extraction returned no JSON object")

    summary = parsed.get("summary")
    return ExtractedConstraints(
        verbosity_adjust=_slider(parsed, "verbosity_adjust", "verbosityAdjust"),
        formality_adjust=_slider(parsed, "formality_adjust", "formalityAdjust"),
        hedging_adjust=_slider(parsed, "hedging_adjust", "hedgingAdjust"),
        avoid_words=_strings(parsed.get("avoid_words", parsed.get("avoidWords")), MAX_AVOID_WORDS),
        prefer_words=_pairs(parsed.get("prefer_words", parsed.get("preferWords"))),
        framing_guidance=_strings(
            parsed.get("framing_guidance", parsed.get("framingGuidance")), MAX_EXTRACTED_GUIDANCE
        ),
        rules=_strings(parsed.get("rules"), MAX_EXTRACTED_RULES),
        summary=summary if isinstance(summary, str) and summary.strip() else DEFAULT_SUMMARY,
    )


async def extract_constraints(client: CompletionClient, text: str) -> ExtractedConstraints:
    """
    Ask the model for the writing constraints a guideline document imposes.

    Args:
        client: Completion service
        text: Guideline text; very long input is truncated

    Returns:
        ExtractedConstraints with sliders clamped to [-2, 2]

    Raises:
        InvalidInputError: Fewer than 50 non-blank characters of text
        UnusableModelOutputError: The response could not be decoded
        CompletionServiceError: The completion call failed or timed out
    """
    if not text or len(text.strip()) < MIN_TEXT_CHARS:
        raise InvalidInputError(f"Provide at least {MIN_TEXT_CHARS} characters of text to analyze")

    sample = text
    if len(text) > MAX_TEXT_CHARS:
        sample = text[:MAX_TEXT_CHARS] + "\n\n[Text truncated...]"

    result = await client.complete(
        completion_request(
            system=EXTRACTION_SYSTEM,
            user=f"TEXT TO ANALYZE:\n{sample}",
            temperature=EXTRACTION_TEMPERATURE,
            chain="extract_constraints",
        )
    )
    constraints = parse_constraints(result.content)
    logger.info(
        f"Extracted constraints: {len(constraints.rules)} rules, "
        f"{len(constraints.avoid_words)} avoid words, {len(constraints.framing_guidance)} guidance items"
    )
    return constraints


def _merged_slider(existing: float, extracted: float) -> float:
    # A slider already tuned for this document is averaged with the extraction
    if existing == 0:
        return clamp_slider(extracted)
    return clamp_slider((existing + extracted) / 2)


def merge_constraints_into_adjustments(
    existing: DocumentAdjustments,
    constraints: ExtractedConstraints,
) -> DocumentAdjustments:
    """Return new adjustments with the constraints layered on; ``existing`` is not mutated."""
    merged = existing.model_copy(deep=True)
    merged.verbosity_adjust = _merged_slider(existing.verbosity_adjust, constraints.verbosity_adjust)
    merged.formality_adjust = _merged_slider(existing.formality_adjust, constraints.formality_adjust)
    merged.hedging_adjust = _merged_slider(existing.hedging_adjust, constraints.hedging_adjust)
    merged.additional_avoid_words = dedupe_capped(
        [*existing.additional_avoid_words, *constraints.avoid_words], MAX_AVOID_WORDS
    )
    merged.additional_prefer_words = {**existing.additional_prefer_words, **constraints.prefer_words}
    merged.additional_framing_guidance = dedupe_capped(
        [*existing.additional_framing_guidance, *constraints.framing_guidance], MAX_FRAMING_GUIDANCE
    )
    merged.learned_rules = [
        *existing.learned_rules,
        *(
            LearnedRule(rule=rule, confidence=CONSTRAINT_RULE_CONFIDENCE, source=RuleSource.DOCUMENT)
            for rule in constraints.rules
        ),
    ][:MAX_LEARNED_RULES]
    return merged
