"""Per-attempt corrections applied between retries of the edit loop.

Sliders are never touched here. They move only on terminal decisions or
explicit user action. The only mid-loop signal is a ``word_choice`` issue
quoting offending words, which are added to the document's avoid list.
"""

import re

from app.core.logging import get_logger
from app.core.schemas_critique import CritiqueAnalysis, CritiqueIssueType
from app.core.schemas_document import DocumentAdjustments

logger = get_logger(__name__)

NORMAL_CORRECTION_STRENGTH = 0.3
STRONG_CORRECTION_STRENGTH = 0.6

_QUOTED_TOKEN = re.compile(r"[\"']([^\"']+)[\"']")


def quoted_tokens(description: str) -> list[str]:
    return [m.strip() for m in _QUOTED_TOKEN.findall(description) if m.strip()]


def apply_corrections_from_critique(
    adjustments: DocumentAdjustments,
    critique: CritiqueAnalysis,
    strength: float = NORMAL_CORRECTION_STRENGTH,
) -> DocumentAdjustments:
    """
    Return corrected adjustments for the next attempt.

    ``strength`` is recorded for logging only; no slider is scaled by it.
    """
    corrected = adjustments.model_copy(deep=True)
    new_words: list[str] = []

    for issue in critique.issues:
        if issue.type is CritiqueIssueType.WORD_CHOICE:
            new_words.extend(quoted_tokens(issue.description))
        else:
            logger.debug(f"No mid-loop correction for {issue.type.value} issue (strength={strength})")

    if new_words:
        # Validator dedupes and caps the list
        corrected.additional_avoid_words = [*corrected.additional_avoid_words, *new_words]
        logger.info(f"Added avoid words from critique: {new_words}")

    return corrected
