"""Request classification: targeted edit vs. new-content generation.

Classification is advisory. Anything ambiguous is an edit, the more
conservative mode (low temperature, capped output, minimal-change wording).
"""

import re
from dataclasses import dataclass

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.schemas_orchestration import RequestMode

logger = get_logger(__name__)

EDIT_TEMPERATURE = 0.25
GENERATION_TEMPERATURE = 0.6

GENERATION_VERBS = ("generate", "write", "create", "draft", "compose", "produce")
CONTENT_NOUNS = (
    "paragraph",
    "section",
    "introduction",
    "conclusion",
    "abstract",
    "summary",
    "sentence",
    "example",
    "content",
    "text",
    "transition",
    "outline",
    "draft",
)
EXPANSION_VERBS = ("expand", "elaborate", "develop", "continue")
EXPLICIT_PHRASES = (
    "add a paragraph",
    "add a section",
    "fill in",
    "flesh out",
    "from scratch",
    "new paragraph",
)

# Verb, then a content noun later in the instruction ("write an intro paragraph")
_GENERATION_PATTERN = re.compile(
    rf"\b(?:{'|'.join(GENERATION_VERBS)})\b.*?\b(?:{'|'.join(CONTENT_NOUNS)})(?:s|es)?\b",
    re.IGNORECASE | re.DOTALL,
)
_EXPANSION_PATTERN = re.compile(
    rf"\b(?:{'|'.join(EXPANSION_VERBS)})(?:s|ed|ing)?\b", re.IGNORECASE
)
_PHRASE_PATTERN = re.compile(
    "|".join(r"\b" + re.escape(p) + r"\b" for p in EXPLICIT_PHRASES), re.IGNORECASE
)


@dataclass
class RequestClassification:
    """Result of request classification."""

    mode: RequestMode
    reason: str
    temperature: float
    max_tokens: int | None


def _edit(reason: str) -> RequestClassification:
    return RequestClassification(
        mode=RequestMode.EDIT,
        reason=reason,
        temperature=EDIT_TEMPERATURE,
        max_tokens=get_settings().EDIT_MAX_TOKENS,
    )


def _generation(reason: str) -> RequestClassification:
    return RequestClassification(
        mode=RequestMode.GENERATION,
        reason=reason,
        temperature=GENERATION_TEMPERATURE,
        max_tokens=None,
    )


def classify_request(instruction: str | None) -> RequestClassification:
    """
    Classify an instruction as an edit or a generation request.

    Args:
        instruction: Free-text user instruction (may be empty)

    Returns:
        RequestClassification with mode and completion parameters
    """
    text = (instruction or "").strip()
    if not text:
        return _edit("no instruction")

    if _PHRASE_PATTERN.search(text):
        result = _generation("explicit generation phrase")
    elif _EXPANSION_PATTERN.search(text):
        result = _generation("expansion verb")
    elif _GENERATION_PATTERN.search(text):
        result = _generation("generation verb with content noun")
    else:
        result = _edit("no generation pattern")

    logger.debug(f"Classified instruction as {result.mode.value}: {result.reason}")
    return result
