"""Prompt Compiler: turns a layered style specification into instructions.

Pure functions only. No network calls, no persistence.

Composition order of ``compile_style_prompt``:
  1. identity
  2. verbosity block (terse / moderate / detailed)
  3. formality block (casual / neutral / formal)
  4. hedging block (confident / balanced / cautious)
  5. formatting bans and requirements
  6. transition phrases
  7. high-confidence learned rules
  8. audience overlay block

Document-level blocks (goals, paragraph intent, neighbouring paragraphs,
retry feedback) are assembled around this by the edit generator.
"""

from app.core.bounds import MAX_AVOID_WORDS
from app.core.logging import get_logger
from app.core.schemas_document import DocumentAdjustments, DocumentGoals, ParagraphIntent
from app.core.schemas_style import (
    AudienceOverlay,
    FormatRule,
    HedgingStyle,
    JargonLevel,
    LearnedRule,
    LengthTarget,
    StyleProfile,
    Verbosity,
)
from app.core.style_bands import (
    CAUTIOUS_THRESHOLD,
    CONFIDENT_THRESHOLD,
    DETAILED_THRESHOLD,
    FORMALITY_EMPHASIS_THRESHOLD,
    MAX_PROMPT_RULES,
    MAX_REDUCTION_PCT,
    MIN_REDUCTION_PCT,
    RULE_CONFIDENCE_FLOOR,
    TERSE_THRESHOLD,
    FormalityBand,
    band_formality,
    merge_overlay,
)

logger = get_logger(__name__)

IDENTITY = (
    "You are a writing assistant that adapts to the user's personal writing style and preferences."
)

EXTREME_COMPRESSION_HEADER = "VERBOSITY: EXTREME COMPRESSION MODE"
DETAILED_NO_CUT_DIRECTIVE = "Do NOT cut content."

# ── Verbosity ──────────────────────────────────────────────────────


TERSE_BLOCK = f"""{EXTREME_COMPRESSION_HEADER} - YOUR #1 PRIORITY IS CUTTING WORDS

TARGET: Remove {MIN_REDUCTION_PCT}-{MAX_REDUCTION_PCT}% of words. If you cut less than {MIN_REDUCTION_PCT}%, you have FAILED.

MANDATORY CUTS:
1. DELETE filler everywhere: "that", "very", "really", "just", "actually", "basically", "quite", "rather", "somewhat", "fairly", "in order to", "the fact that"
2. DELETE weak openings: "It is important to note", "It should be noted", "It is worth mentioning", "As we can see"
3. DELETE redundant modifiers: "completely eliminate" -> "eliminate", "absolutely essential" -> "essential"
4. COMBINE pairs of short sentences
5. REPLACE phrases with single words: "due to the fact that" -> "because", "in the event that" -> "if", "at this point in time" -> "now"
6. CUT prepositional chains: "the behavior of the system" -> "system behavior"
7. USE active voice: "was observed by us" -> "we observed"
8. DELETE hedge phrases: "it appears that", "it seems that", "may potentially"
9. REMOVE throat-clearing: any sentence that restates what was just said

Every sentence must be shorter. Count the words before and after; if the result is not at least {MIN_REDUCTION_PCT}% shorter, rewrite and cut more."""

DETAILED_BLOCK = (
    "VERBOSITY: DETAILED MODE. Provide comprehensive, detailed writing. Include relevant context "
    f"and thorough explanations. Expand on key points. {DETAILED_NO_CUT_DIRECTIVE} "
    "Maintain or increase the word count."
)

MODERATE_BLOCK = (
    "VERBOSITY: Balance conciseness with sufficient detail. Elaborate where necessary but avoid padding."
)

# ── Formality ──────────────────────────────────────────────────────

FORMAL_BLOCK = """FORMALITY: MAXIMUM FORMAL/ACADEMIC MODE - STRICT REQUIREMENT
- Use formal, academic language throughout.
- NEVER use contractions: don't -> do not, isn't -> is not, won't -> will not, can't -> cannot.
- Use precise, technical vocabulary.
- Use third person. Avoid "I", "we", "you". Use "one", "the authors", "this study".
- Use formal transitions: "Furthermore", "Moreover", "Consequently", "Nevertheless".
- AVOID casual phrases: "a lot", "things", "stuff", "kind of", "sort of", "pretty much"."""

CASUAL_BLOCK = """FORMALITY: MAXIMUM CASUAL/CONVERSATIONAL MODE - STRICT REQUIREMENT
- Write like you're talking to a friend.
- USE contractions everywhere: don't, isn't, won't, can't, we're, they've, it's.
- Use first and second person freely: "I", "we", "you".
- Prefer short, everyday words.
- AVOID stiff academic phrases: "it should be noted", "one might argue", "it is evident".
- Use "But", "So", "And" instead of "However", "Therefore", "Additionally"."""

NEUTRAL_FORMALITY_BLOCK = (
    "FORMALITY: Use clear, professional language that is accessible but not overly casual."
)

# ── Hedging ────────────────────────────────────────────────────────

CONFIDENT_BLOCK = """HEDGING: CONFIDENT MODE
- Make direct, confident assertions.
- REMOVE hedging words: "may", "might", "perhaps", "possibly", "suggests", "appears to", "seems to".
- State findings and conclusions definitively.
- Example: "This approach improves accuracy" NOT "This approach may improve accuracy"."""

CAUTIOUS_BLOCK = """HEDGING: CAUTIOUS MODE
- Use appropriate hedging language throughout.
- ADD qualifiers: "may", "might", "suggests", "appears to", "could potentially".
- Acknowledge uncertainty and limitations explicitly.
- Example: "Results suggest this may improve accuracy" NOT "This improves accuracy"."""

BALANCED_HEDGING_BLOCK = (
    "HEDGING: Balance confidence with appropriate hedging. Be direct but acknowledge limitations where relevant."
)

# ── Formatting ─────────────────────────────────────────────────────

FORMAT_BAN_PHRASES: dict[str, str] = {
    FormatRule.EMOJI.value: "emojis",
    FormatRule.EM_DASH.value: "em-dashes",
    FormatRule.EXCLAMATION.value: "exclamation marks",
    FormatRule.HEADERS.value: "markdown headers",
    FormatRule.BULLET_POINTS.value: "bullet points",
    FormatRule.BOLD.value: "bold text",
    FormatRule.ITALICS.value: "italics",
}

FORMAT_REQUIRED_PHRASES: dict[str, str] = {
    FormatRule.CODE_BLOCKS.value: "code blocks for code examples",
    FormatRule.BULLET_POINTS.value: "bullet points for lists",
    FormatRule.HEADERS.value: "headers to organize content",
    FormatRule.NUMBERED.value: "numbered lists for sequential steps",
}

# Framing guidance dropped in the detailed band because it contradicts it
_CONCISE_MARKERS = ("concise", "terse", "pruning", "shorter", "reduce", "word police")


def _value(item: FormatRule | str) -> str:
    return item.value if isinstance(item, FormatRule) else str(item)


def build_verbosity_instruction(verbosity: Verbosity) -> str:
    if verbosity is Verbosity.TERSE:
        return TERSE_BLOCK
    if verbosity is Verbosity.DETAILED:
        return DETAILED_BLOCK
    return MODERATE_BLOCK


def build_formality_instruction(level: float) -> str:
    band = band_formality(level)
    if band is FormalityBand.FORMAL:
        return FORMAL_BLOCK
    if band is FormalityBand.CASUAL:
        return CASUAL_BLOCK
    return NEUTRAL_FORMALITY_BLOCK


def build_hedging_instruction(style: HedgingStyle) -> str:
    if style is HedgingStyle.CONFIDENT:
        return CONFIDENT_BLOCK
    if style is HedgingStyle.CAUTIOUS:
        return CAUTIOUS_BLOCK
    return BALANCED_HEDGING_BLOCK


def build_format_instruction(bans: list[FormatRule | str], required: list[FormatRule | str]) -> str:
    if not bans and not required:
        return ""
    parts = ["FORMATTING:"]
    if bans:
        ban_list = ", ".join(FORMAT_BAN_PHRASES.get(_value(b), _value(b)) for b in bans)
        parts.append(f"Never use: {ban_list}.")
    if required:
        req_list = ", ".join(FORMAT_REQUIRED_PHRASES.get(_value(r), _value(r)) for r in required)
        parts.append(f"Always use: {req_list}.")
    return " ".join(parts)


def build_transition_instruction(phrases: list[str]) -> str:
    if not phrases:
        return ""
    listed = ", ".join(f'"{p}"' for p in phrases[:10])
    return f"TRANSITIONS: When appropriate, use transition phrases like: {listed}"


def select_prompt_rules(rules: list[LearnedRule]) -> list[LearnedRule]:
    """High-confidence rules only, most recent first, at most MAX_PROMPT_RULES."""
    confident = [r for r in rules if r.confidence >= RULE_CONFIDENCE_FLOOR]
    return list(reversed(confident))[:MAX_PROMPT_RULES]


def build_learned_rules_instruction(rules: list[LearnedRule]) -> str:
    selected = select_prompt_rules(rules)
    if not selected:
        return ""
    rule_list = "\n".join(f"- {r.rule}" for r in selected)
    return f"SPECIFIC PREFERENCES:\n{rule_list}"


def build_audience_instruction(overlay: AudienceOverlay) -> str:
    parts = [f"AUDIENCE CONTEXT: {overlay.name}"]

    if overlay.jargon_level is JargonLevel.MINIMAL:
        parts.append("Use minimal technical jargon. Make content accessible to a broad audience.")
    elif overlay.jargon_level is JargonLevel.HEAVY:
        parts.append("Use appropriate technical terminology freely. Assume audience expertise.")
    else:
        parts.append("Use moderate technical language. Define specialized terms when first used.")

    if overlay.emphasis_points:
        parts.append(f"Emphasize: {', '.join(overlay.emphasis_points)}.")

    if overlay.framing_guidance:
        parts.append("Framing guidance:")
        parts.extend(f"- {g}" for g in overlay.framing_guidance)

    guidance = overlay.length_guidance
    if guidance:
        if guidance.target is LengthTarget.CONCISE:
            parts.append("Keep responses concise. Word economy is critical.")
        elif guidance.target is LengthTarget.COMPREHENSIVE:
            parts.append("Provide comprehensive detail where appropriate.")
        if guidance.max_words:
            parts.append(f"Target approximately {guidance.max_words} words.")

    if overlay.discipline_terms:
        parts.append(f"Relevant domain terms: {', '.join(overlay.discipline_terms[:10])}")

    return "\n".join(parts)


def compile_style_prompt(style: StyleProfile, audience: AudienceOverlay | None = None) -> str:
    """Compile a (document-adjusted) style and optional overlay into instructions.

    Word-level avoid/prefer lists from the global style are deliberately not
    rendered; only structural style patterns are.
    """
    effective = merge_overlay(style, audience)

    sections = [
        IDENTITY,
        build_verbosity_instruction(effective.verbosity),
        build_formality_instruction(effective.formality_level),
        build_hedging_instruction(effective.hedging_style),
        build_format_instruction(effective.format_bans, effective.required_formats),
        build_transition_instruction(effective.transition_phrases),
        build_learned_rules_instruction(effective.learned_rules),
    ]
    if audience:
        sections.append(build_audience_instruction(audience))

    return "\n\n".join(s for s in sections if s)


# ── Document-level blocks ──────────────────────────────────────────


def build_document_context_prompt(adjustments: DocumentAdjustments) -> str:
    """Emphasis blocks derived from a document's own adjustments."""
    parts: list[str] = []

    if adjustments.verbosity_adjust <= TERSE_THRESHOLD:
        parts.append(
            f"CRITICAL - EXTREME COMPRESSION: You MUST cut {MIN_REDUCTION_PCT}-{MAX_REDUCTION_PCT}% of words. "
            'Delete "that/very/really/just/actually". Combine sentences. Cut prepositional phrases. '
            f"Rewrite until at least {MIN_REDUCTION_PCT}% shorter."
        )
        parts.append("")
    elif adjustments.verbosity_adjust >= DETAILED_THRESHOLD:
        parts.append(
            "IMPORTANT - DETAILED MODE: This document requires comprehensive, detailed writing. "
            f"Your edit should maintain or INCREASE the word count. {DETAILED_NO_CUT_DIRECTIVE} "
            "Ignore any conflicting instructions about being concise."
        )
        parts.append("")

    if adjustments.formality_adjust <= -FORMALITY_EMPHASIS_THRESHOLD:
        parts.append(
            "CRITICAL - MAXIMUM CASUAL: Use contractions everywhere (don't, won't, it's). "
            "No academic stiffness."
        )
        parts.append("")
    elif adjustments.formality_adjust >= FORMALITY_EMPHASIS_THRESHOLD:
        parts.append(
            'CRITICAL - MAXIMUM FORMAL: ZERO contractions. Use "do not", "will not", "cannot". '
            "Third person only. Academic register."
        )
        parts.append("")

    if adjustments.hedging_adjust <= CONFIDENT_THRESHOLD:
        parts.append(
            "IMPORTANT - CONFIDENT ASSERTIONS: Remove hedging words (may, might, suggests, appears). "
            "Make direct, definitive statements."
        )
        parts.append("")
    elif adjustments.hedging_adjust >= CAUTIOUS_THRESHOLD:
        parts.append(
            "IMPORTANT - CAUTIOUS HEDGING: Add qualifiers (may, might, suggests, could). "
            "Acknowledge uncertainty. Avoid absolute claims."
        )
        parts.append("")

    guidance = adjustments.additional_framing_guidance
    if adjustments.verbosity_adjust >= DETAILED_THRESHOLD:
        guidance = [g for g in guidance if not any(m in g.lower() for m in _CONCISE_MARKERS)]
    if guidance:
        parts.append("DOCUMENT-SPECIFIC CONSTRAINTS:")
        parts.extend(f"- {g}" for g in guidance)
        parts.append("")

    if adjustments.additional_prefer_words:
        parts.append("WORD SUBSTITUTIONS FOR THIS DOCUMENT:")
        parts.extend(
            f'- Instead of "{src}", use "{dst}"'
            for src, dst in adjustments.additional_prefer_words.items()
        )
        parts.append("")

    # Substitution sources are already covered above
    substituted = {w.lower() for w in adjustments.additional_prefer_words}
    avoid = [w for w in adjustments.additional_avoid_words if w.lower() not in substituted]
    if avoid:
        parts.append(f"ADDITIONAL WORDS TO AVOID: {', '.join(avoid[:MAX_AVOID_WORDS])}")
        parts.append("")

    if adjustments.learned_rules:
        parts.append("SPECIFIC RULES FOR THIS DOCUMENT:")
        parts.extend(f"- {r.rule}" for r in adjustments.learned_rules)
        parts.append("")

    return "\n".join(parts)


def build_goals_prompt(goals: DocumentGoals | None) -> str:
    if not goals or not (goals.summary or goals.objectives):
        return ""
    parts = ["DOCUMENT GOALS:"]
    if goals.summary:
        parts.append(f"Summary: {goals.summary}")
    if goals.objectives:
        parts.append("Objectives:")
        parts.extend(f"  {i}. {o}" for i, o in enumerate(goals.objectives, start=1))
    if goals.main_argument:
        parts.append(f"Main argument: {goals.main_argument}")
    if goals.audience_needs:
        parts.append(f"Audience needs: {goals.audience_needs}")
    if goals.success_criteria:
        parts.append(f"Success criteria: {goals.success_criteria}")
    return "\n".join(parts)


def build_paragraph_intent_prompt(intent: ParagraphIntent | None) -> str:
    if intent is None:
        return ""
    parts = ["PARAGRAPH INTENT (preserve this purpose):", f"Purpose: {intent.purpose}"]
    if intent.connection_to_previous:
        parts.append(f"Builds on previous: {intent.connection_to_previous}")
    if intent.connection_to_next:
        parts.append(f"Leads into next: {intent.connection_to_next}")
    if intent.role_in_goals:
        parts.append(f"Role in document goals: {intent.role_in_goals}")
    return "\n".join(parts)
