"""Generate one candidate edit (or new content) for a target paragraph.

The compiled style block is wrapped with document context: structure,
goals, paragraph intent, neighbouring paragraphs and, on retries, the
previous attempt's critique issues.
"""

import re

from app.context.prompt_compiler import (
    build_document_context_prompt,
    build_goals_prompt,
    build_paragraph_intent_prompt,
    compile_style_prompt,
)
from app.core.llm import ChunkCallback, CompletionClient, completion_request
from app.core.logging import get_logger
from app.core.request_classifier import RequestClassification
from app.core.schemas_critique import CritiqueIssue
from app.core.schemas_document import DocumentAdjustments, ParagraphIntent
from app.core.schemas_orchestration import DocumentStructure, RequestMode
from app.core.schemas_style import AudienceOverlay, StyleProfile, Verbosity
from app.core.style_bands import (
    MIN_REDUCTION_PCT,
    approx_word_count,
    band_verbosity,
    terse_word_target,
)

logger = get_logger(__name__)

CONTEXT_WINDOW = 2
DEFAULT_INSTRUCTION = "Improve this paragraph according to my style preferences."
GENERATE_USER_MESSAGE = "Please edit the paragraph now."

EDIT_FRAMING = "You are editing a specific paragraph within a larger document."
GENERATION_FRAMING = (
    "You are working on a document and may need to generate new content, expand existing "
    "content, or make significant changes based on the instruction.\n"
    "You are NOT limited to just editing the existing text - you can rewrite, expand, or "
    "generate entirely new content as the instruction requires."
)

EDIT_OUTPUT_RULE = "Return ONLY the edited paragraph text. Do not include any explanation."
GENERATION_OUTPUT_RULE = (
    "Return the content that fulfills the instruction above. You may generate new paragraphs, "
    "expand existing content, or rewrite as needed.\n"
    "If multiple paragraphs are appropriate, separate them with blank lines.\n"
    "Do not include explanations or meta-commentary - just return the content itself."
)

_BOILERPLATE_PREFIXES = [
    re.compile(r"^here'?s?\s+(the\s+)?edited\s+(paragraph|version|text)[ \t]*(?::|\n)\s*", re.IGNORECASE),
    re.compile(r"^edited\s+(paragraph|version|text)[ \t]*(?::|\n)\s*", re.IGNORECASE),
    re.compile(r"^the\s+edited\s+(paragraph|version|text)[ \t]*(?::|\n)\s*", re.IGNORECASE),
]


def clean_generated_text(raw: str) -> str:
    """Strip boilerplate lead-ins and one pair of symmetric surrounding quotes."""
    text = raw.strip()
    for prefix in _BOILERPLATE_PREFIXES:
        text = prefix.sub("", text)
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ('"', "'"):
        text = text[1:-1]
    return text


def build_generation_prompt(
    paragraphs: list[str],
    paragraph_index: int,
    style: StyleProfile,
    adjustments: DocumentAdjustments,
    mode: RequestMode = RequestMode.EDIT,
    instruction: str | None = None,
    audience: AudienceOverlay | None = None,
    document_structure: DocumentStructure | None = None,
    paragraph_intent: ParagraphIntent | None = None,
    previous_issues: list[CritiqueIssue] | None = None,
) -> str:
    """Assemble the full system prompt for one generate attempt."""
    current = paragraphs[paragraph_index]
    start_before = max(0, paragraph_index - CONTEXT_WINDOW)
    before = paragraphs[start_before:paragraph_index]
    after = paragraphs[paragraph_index + 1 : paragraph_index + 1 + CONTEXT_WINDOW]
    section = document_structure.section_for(paragraph_index) if document_structure else None
    is_generation = mode is RequestMode.GENERATION

    parts: list[str] = [compile_style_prompt(style, audience), "", "---", ""]
    parts.append(GENERATION_FRAMING if is_generation else EDIT_FRAMING)
    parts.append("")

    if document_structure:
        parts.append("DOCUMENT CONTEXT:")
        parts.append(f"Title: {document_structure.title}")
        parts.append(f"Type: {document_structure.document_type}")
        parts.append(f"Main argument: {document_structure.main_argument}")
        parts.append("")

    if section:
        parts.append(f"CURRENT SECTION: {section.name} ({section.type})")
        parts.append(f"Section purpose: {section.purpose}")
        parts.append("")

    if document_structure and document_structure.key_terms:
        parts.append("KEY TERMS:")
        parts.extend(f"- {t}" for t in document_structure.key_terms)
        parts.append("")

    goals_block = build_goals_prompt(adjustments.document_goals)
    if goals_block:
        parts.extend([goals_block, ""])

    intent_block = build_paragraph_intent_prompt(paragraph_intent)
    if intent_block:
        parts.extend([intent_block, ""])

    doc_context = build_document_context_prompt(adjustments)
    if doc_context.strip():
        parts.append(doc_context)

    if before:
        parts.append("PRECEDING PARAGRAPHS (for context, do not edit):")
        parts.extend(f"[Paragraph {start_before + i + 1}]: {p}" for i, p in enumerate(before))
        parts.append("")

    parts.append("PARAGRAPH TO EDIT:")
    parts.append(current)
    parts.append("")

    if after:
        parts.append("FOLLOWING PARAGRAPHS (for context, do not edit):")
        parts.extend(f"[Paragraph {paragraph_index + 2 + i}]: {p}" for i, p in enumerate(after))
        parts.append("")

    if previous_issues:
        parts.extend(["---", "", "FEEDBACK ON PREVIOUS ATTEMPT:"])
        parts.append("Your previous edit had these issues that need to be addressed:")
        parts.extend(f"- {issue.type.value}: {issue.description}" for issue in previous_issues)
        parts.append("")
        parts.append("Please generate an improved version that addresses these issues.")
        parts.append("")

    parts.extend(["---", ""])

    base_instruction = instruction or DEFAULT_INSTRUCTION
    is_terse = band_verbosity(adjustments.verbosity_adjust) is Verbosity.TERSE
    if is_terse and not is_generation:
        parts.append(f"EDIT INSTRUCTION: {base_instruction}")
        parts.append("")
        parts.append("CRITICAL WORD COUNT REQUIREMENT")
        parts.append(
            f"You MUST cut at least {MIN_REDUCTION_PCT}% of words. Count them. "
            f"Original has approximately {approx_word_count(current)} words."
        )
        parts.append(f"Your output MUST have fewer than {terse_word_target(current)} words.")
        parts.append("If your edit is not significantly shorter, START OVER and cut more aggressively.")
    else:
        parts.append(f"INSTRUCTION: {base_instruction}")

    parts.append("")
    parts.append(GENERATION_OUTPUT_RULE if is_generation else EDIT_OUTPUT_RULE)
    return "\n".join(parts)


async def generate_edit(
    client: CompletionClient,
    paragraphs: list[str],
    paragraph_index: int,
    style: StyleProfile,
    adjustments: DocumentAdjustments,
    classification: RequestClassification,
    instruction: str | None = None,
    audience: AudienceOverlay | None = None,
    document_structure: DocumentStructure | None = None,
    paragraph_intent: ParagraphIntent | None = None,
    previous_issues: list[CritiqueIssue] | None = None,
    on_chunk: ChunkCallback | None = None,
) -> str:
    """
    Produce one cleaned candidate for the target paragraph.

    Streams through ``on_chunk`` when given; the returned text is the same
    either way.

    Raises:
        CompletionServiceError: The completion call failed or timed out
    """
    prompt = build_generation_prompt(
        paragraphs=paragraphs,
        paragraph_index=paragraph_index,
        style=style,
        adjustments=adjustments,
        mode=classification.mode,
        instruction=instruction,
        audience=audience,
        document_structure=document_structure,
        paragraph_intent=paragraph_intent,
        previous_issues=previous_issues,
    )
    request = completion_request(
        system=prompt,
        user=GENERATE_USER_MESSAGE,
        temperature=classification.temperature,
        max_tokens=classification.max_tokens,
        chain="generate_edit",
    )

    if on_chunk is not None:
        result = await client.stream_complete(request, on_chunk)
    else:
        result = await client.complete(request)

    text = clean_generated_text(result.content)
    logger.debug(
        f"Generated {classification.mode.value} candidate for paragraph {paragraph_index} "
        f"({approx_word_count(text)} words)"
    )
    return text
