"""Advisory pattern report across a document's rejected/partial decisions.

Nothing here mutates preferences; the suggested adjustments are shown to
the user, who may apply them explicitly.
"""

from typing import Any

from pydantic import BaseModel, Field

from app.context.prompt_compiler import compile_style_prompt
from app.core.bounds import EXAMPLE_SNIPPET_CHARS, clamp_slider, is_finite_number
from app.core.llm import CompletionClient, completion_request, extract_json_object
from app.core.logging import get_logger
from app.core.schemas_document import EditDecision, EditDecisionType
from app.core.schemas_style import AudienceOverlay, StyleProfile

logger = get_logger(__name__)

MIN_DECISIONS = 3
MIN_RELEVANT_DECISIONS = 2
MAX_SUMMARISED_DECISIONS = 10
PATTERN_TEMPERATURE = 0.2

PATTERN_SYSTEM = "You are a pattern analysis agent. Respond only with valid JSON."

PATTERN_USER = """Analyze patterns across these edit decisions to understand user preferences:

{style_prompt}

RECENT EDIT DECISIONS:
{decision_summaries}

Look for consistent patterns in what the user changes. Respond with JSON:
{{
  "patterns": ["<pattern 1>", "<pattern 2>"],
  "suggested_adjustments": {{
    "verbosity_adjust": <-2 to 2 or null>,
    "formality_adjust": <-2 to 2 or null>,
    "hedging_adjust": <-2 to 2 or null>,
    "additional_avoid_words": ["<words to avoid>"],
    "additional_framing_guidance": ["<framing guidance>"]
  }}
}}

Only include adjustments with clear patterns. Return ONLY the JSON object."""

_SLIDER_KEYS = ("verbosity_adjust", "formality_adjust", "hedging_adjust")
_LIST_KEYS = ("additional_avoid_words", "additional_framing_guidance")


class EditPatternReport(BaseModel):
    patterns: list[str] = Field(default_factory=list)
    suggested_adjustments: dict[str, Any] = Field(default_factory=dict)


def _summarise(decisions: list[EditDecision]) -> str:
    blocks = []
    for i, d in enumerate(decisions, start=1):
        lines = [
            f"Decision {i} ({d.decision.value}):",
            f'- Suggested: "{d.suggested_edit[:EXAMPLE_SNIPPET_CHARS]}..."',
            f'- User wanted: "{d.final_text[:EXAMPLE_SNIPPET_CHARS]}..."',
        ]
        if d.instruction:
            lines.append(f"- Instruction: {d.instruction}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _sanitise_adjustments(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        return {}
    cleaned: dict[str, Any] = {}
    for key in _SLIDER_KEYS:
        value = raw.get(key)
        if is_finite_number(value):
            cleaned[key] = clamp_slider(float(value))
    for key in _LIST_KEYS:
        value = raw.get(key)
        if isinstance(value, list):
            items = [v for v in value if isinstance(v, str) and v.strip()]
            if items:
                cleaned[key] = items
    return cleaned


async def analyze_edit_patterns(
    client: CompletionClient,
    decisions: list[EditDecision],
    style: StyleProfile,
    audience: AudienceOverlay | None = None,
) -> EditPatternReport:
    """
    Summarise recurring reasons for rejected and partial edits.

    Returns an empty report without a model call when there are fewer than
    three decisions or fewer than two rejected/partial ones.

    Raises:
        CompletionServiceError: The completion call failed or timed out
    """
    if len(decisions) < MIN_DECISIONS:
        return EditPatternReport()

    relevant = [
        d for d in decisions if d.decision in (EditDecisionType.REJECTED, EditDecisionType.PARTIAL)
    ]
    if len(relevant) < MIN_RELEVANT_DECISIONS:
        return EditPatternReport()

    prompt = PATTERN_USER.format(
        style_prompt=compile_style_prompt(style, audience),
        decision_summaries=_summarise(relevant[-MAX_SUMMARISED_DECISIONS:]),
    )
    result = await client.complete(
        completion_request(
            system=PATTERN_SYSTEM,
            user=prompt,
            temperature=PATTERN_TEMPERATURE,
            chain="analyze_edit_patterns",
        )
    )

    parsed = extract_json_object(result.content)
    if parsed is None:
        logger.warning("Pattern analysis response was not valid JSON")
        return EditPatternReport()

    raw_patterns = parsed.get("patterns")
    report = EditPatternReport(
        patterns=[p for p in raw_patterns if isinstance(p, str)] if isinstance(raw_patterns, list) else [],
        suggested_adjustments=_sanitise_adjustments(
            parsed.get("suggested_adjustments", parsed.get("suggestedAdjustments"))
        ),
    )
    logger.info(f"Pattern analysis found {len(report.patterns)} patterns over {len(relevant)} decisions")
    return report
