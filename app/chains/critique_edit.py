"""Critique a candidate edit against the effective style.

One low-temperature completion call, then a best-effort decode. A response
without a decodable ``{...}`` block yields the optimistic default critique so
evaluator hiccups never block the edit pipeline. Service failures propagate.
"""

from typing import Any

from app.context.prompt_compiler import compile_style_prompt
from app.core.bounds import clamp, is_finite_number
from app.core.llm import CompletionClient, completion_request, extract_json_object
from app.core.logging import get_logger
from app.core.schemas_critique import (
    CritiqueAnalysis,
    CritiqueIssue,
    CritiqueIssueSeverity,
    CritiqueIssueType,
    default_critique,
)
from app.core.schemas_document import DocumentAdjustments
from app.core.schemas_style import AudienceOverlay, StyleProfile

logger = get_logger(__name__)

CRITIQUE_TEMPERATURE = 0.2
MISSING_SCORE = 0.5

CRITIQUE_SYSTEM = "You are a writing critique agent. Respond only with valid JSON."

CRITIQUE_USER = """You are a writing critique agent. Evaluate how well a suggested edit aligns with the user's writing preferences.

{style_prompt}{adjustment_context}

{section_line}

ORIGINAL TEXT:
{original_text}

SUGGESTED EDIT:
{suggested_edit}

Analyze the suggested edit and provide a JSON response with this exact structure:
{{
  "alignment_score": <number 0-1 indicating how well the edit matches the preferences>,
  "predicted_acceptance": <number 0-1 predicting likelihood user will accept>,
  "issues": [
    {{
      "type": "<verbosity|formality|word_choice|structure|tone|hedging>",
      "severity": "<minor|moderate|major>",
      "description": "<brief description of the issue; quote offending words>"
    }}
  ],
  "suggestions": ["<brief suggestion for improvement>"]
}}

Focus on:
1. Does the edit match the verbosity preference?
2. Is the formality level appropriate?
3. Are avoided words being introduced or preferred words being removed?
4. Does the hedging style match the preference?
5. Does the structure match style patterns?

Return ONLY the JSON object, no other text."""


def build_adjustment_context(adjustments: DocumentAdjustments | None) -> str:
    """Summarise non-default document adjustments for the evaluator."""
    if adjustments is None:
        return ""

    lines: list[str] = []
    if adjustments.verbosity_adjust != 0:
        direction = "more detailed" if adjustments.verbosity_adjust > 0 else "more terse"
        lines.append(f"Verbosity adjustment: {direction} ({adjustments.verbosity_adjust})")
    if adjustments.formality_adjust != 0:
        direction = "more formal" if adjustments.formality_adjust > 0 else "less formal"
        lines.append(f"Formality adjustment: {direction} ({adjustments.formality_adjust})")
    if adjustments.hedging_adjust != 0:
        direction = "more cautious" if adjustments.hedging_adjust > 0 else "more confident"
        lines.append(f"Hedging adjustment: {direction} ({adjustments.hedging_adjust})")
    if adjustments.additional_avoid_words:
        lines.append(f"Additional words to avoid: {', '.join(adjustments.additional_avoid_words)}")
    if adjustments.learned_rules:
        lines.append("Learned rules from this document:")
        lines.extend(f"- {r.rule}" for r in adjustments.learned_rules)

    if not lines:
        return ""
    return "\n\nDOCUMENT-SPECIFIC ADJUSTMENTS:\n" + "\n".join(lines)


def _score(raw: Any) -> float:
    if not is_finite_number(raw):
        return MISSING_SCORE
    return clamp(float(raw), 0.0, 1.0)


def _issue(raw: Any) -> CritiqueIssue | None:
    if not isinstance(raw, dict):
        return None
    try:
        issue_type = CritiqueIssueType(raw.get("type"))
    except ValueError:
        issue_type = CritiqueIssueType.STRUCTURE
    try:
        severity = CritiqueIssueSeverity(raw.get("severity"))
    except ValueError:
        severity = CritiqueIssueSeverity.MINOR
    description = raw.get("description")
    return CritiqueIssue(
        type=issue_type,
        severity=severity,
        description=description if isinstance(description, str) else "",
    )


def parse_critique(raw_output: str) -> CritiqueAnalysis:
    """Validate a raw evaluator response field by field.

    Returns the default critique when no JSON object can be decoded.
    """
    parsed = extract_json_object(raw_output)
    if parsed is None:
        logger.warning("Critique response had no decodable JSON object, using default critique")
        return default_critique()

    # Accept camelCase keys too; models drift between conventions
    alignment = parsed.get("alignment_score", parsed.get("alignmentScore"))
    acceptance = parsed.get("predicted_acceptance", parsed.get("predictedAcceptance"))

    raw_issues = parsed.get("issues")
    issues = [i for i in (_issue(r) for r in raw_issues or []) if i] if isinstance(raw_issues, list) else []

    raw_suggestions = parsed.get("suggestions")
    suggestions = (
        [s for s in raw_suggestions if isinstance(s, str)] if isinstance(raw_suggestions, list) else []
    )

    return CritiqueAnalysis(
        alignment_score=_score(alignment),
        predicted_acceptance=_score(acceptance),
        issues=issues,
        suggestions=suggestions,
    )


async def critique_edit(
    client: CompletionClient,
    original_text: str,
    suggested_edit: str,
    style: StyleProfile,
    audience: AudienceOverlay | None = None,
    adjustments: DocumentAdjustments | None = None,
    section_type: str | None = None,
) -> CritiqueAnalysis:
    """
    Score a suggested edit against the (document-adjusted) style.

    Args:
        client: Completion service
        original_text: The paragraph before editing
        suggested_edit: Candidate produced by the generator
        style: Effective style for this attempt
        audience: Optional audience overlay
        adjustments: Current document adjustments, summarised for the evaluator
        section_type: Type of the section containing the paragraph, if known

    Returns:
        CritiqueAnalysis with scores clamped into [0, 1]

    Raises:
        CompletionServiceError: The completion call failed or timed out
    """
    prompt = CRITIQUE_USER.format(
        style_prompt=compile_style_prompt(style, audience),
        adjustment_context=build_adjustment_context(adjustments),
        section_line=f"SECTION TYPE: {section_type}" if section_type else "",
        original_text=original_text,
        suggested_edit=suggested_edit,
    )

    result = await client.complete(
        completion_request(
            system=CRITIQUE_SYSTEM,
            user=prompt,
            temperature=CRITIQUE_TEMPERATURE,
            chain="critique_edit",
        )
    )

    critique = parse_critique(result.content)
    logger.info(
        f"Critique: alignment={critique.alignment_score:.2f} "
        f"acceptance={critique.predicted_acceptance:.2f} issues={len(critique.issues)}"
    )
    return critique
