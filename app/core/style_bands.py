"""Style banding: maps continuous document sliders onto discrete style modes.

The thresholds here are shared by the prompt compiler (which phrases the
directives) and the orchestration loop (which adds the word-count hint in
the terse band). Prompt text is formatted from these constants, never
restated as literals.
"""

from enum import Enum
from typing import Any

from app.core.bounds import FORMALITY_MAX, FORMALITY_MIN, clamp, dedupe_capped
from app.core.schemas_document import DocumentAdjustments
from app.core.schemas_style import AudienceOverlay, HedgingStyle, StyleProfile, Verbosity

# Slider bands (verbosity_adjust, hedging_adjust)
TERSE_THRESHOLD = -0.5
DETAILED_THRESHOLD = 0.5
CONFIDENT_THRESHOLD = -0.5
CAUTIOUS_THRESHOLD = 0.5

# Formality level bands (1-5)
FORMAL_LEVEL = 4
CASUAL_LEVEL = 2

# Document-context emphasis for formality_adjust
FORMALITY_EMPHASIS_THRESHOLD = 1.0

# Terse-mode reduction target, in percent of original words
MIN_REDUCTION_PCT = 30
MAX_REDUCTION_PCT = 50

# Learned rules injected into prompts
RULE_CONFIDENCE_FLOOR = 0.6
MAX_PROMPT_RULES = 10


class FormalityBand(str, Enum):
    CASUAL = "casual"
    NEUTRAL = "neutral"
    FORMAL = "formal"


def band_verbosity(adjust: float) -> Verbosity:
    if adjust <= TERSE_THRESHOLD:
        return Verbosity.TERSE
    if adjust >= DETAILED_THRESHOLD:
        return Verbosity.DETAILED
    return Verbosity.MODERATE


def band_hedging(adjust: float) -> HedgingStyle:
    if adjust <= CONFIDENT_THRESHOLD:
        return HedgingStyle.CONFIDENT
    if adjust >= CAUTIOUS_THRESHOLD:
        return HedgingStyle.CAUTIOUS
    return HedgingStyle.BALANCED


def band_formality(level: float) -> FormalityBand:
    if level >= FORMAL_LEVEL:
        return FormalityBand.FORMAL
    if level <= CASUAL_LEVEL:
        return FormalityBand.CASUAL
    return FormalityBand.NEUTRAL


def approx_word_count(text: str) -> int:
    """Whitespace word count. A soft prompt hint, not a measurement."""
    return len(text.split())


def terse_word_target(text: str) -> int:
    return int(approx_word_count(text) * (100 - MIN_REDUCTION_PCT) / 100)


def apply_adjustments_to_style(
    style: StyleProfile,
    adjustments: DocumentAdjustments,
) -> StyleProfile:
    """Layer a document's sliders and word lists onto the base style.

    In the middle band the base style's verbosity and hedging are kept.
    """
    verbosity = style.verbosity
    verbosity_band = band_verbosity(adjustments.verbosity_adjust)
    if verbosity_band is not Verbosity.MODERATE:
        verbosity = verbosity_band

    hedging = style.hedging_style
    hedging_band = band_hedging(adjustments.hedging_adjust)
    if hedging_band is not HedgingStyle.BALANCED:
        hedging = hedging_band

    formality = style.formality_level
    if adjustments.formality_adjust != 0:
        # Unrounded; the prompt compiler bands it
        formality = clamp(style.formality_level + adjustments.formality_adjust, FORMALITY_MIN, FORMALITY_MAX)

    return style.model_copy(
        update={
            "verbosity": verbosity,
            "hedging_style": hedging,
            "formality_level": formality,
            "avoid_words": dedupe_capped(
                [*style.avoid_words, *adjustments.additional_avoid_words],
                cap=len(style.avoid_words) + len(adjustments.additional_avoid_words),
            ),
            "preferred_words": {**style.preferred_words, **adjustments.additional_prefer_words},
            "learned_rules": [*style.learned_rules, *adjustments.learned_rules],
        },
        deep=True,
    )


def merge_overlay(style: StyleProfile, overlay: AudienceOverlay | None) -> StyleProfile:
    """Apply an overlay's overrides, keeping the document-adjusted core settings."""
    if overlay is None or not overlay.overrides:
        return style

    known = set(StyleProfile.model_fields)
    overrides: dict[str, Any] = {k: v for k, v in overlay.overrides.items() if k in known}
    merged = StyleProfile.model_validate({**style.model_dump(), **overrides})
    return merged.model_copy(
        update={
            "verbosity": style.verbosity,
            "formality_level": style.formality_level,
            "hedging_style": style.hedging_style,
        }
    )
