"""Best-effort analysis of what a paragraph is trying to accomplish.

Used as optional context by the edit loop. Callers treat every failure
here as non-fatal.
"""

from app.core.llm import CompletionClient, completion_request, extract_json_object
from app.core.logging import get_logger
from app.core.schemas_document import DocumentGoals, ParagraphIntent

logger = get_logger(__name__)

INTENT_TEMPERATURE = 0.2
NEIGHBOUR_PREVIEW_CHARS = 300
UNKNOWN_INTENT = "Unable to analyze intent"

INTENT_SYSTEM = "You are an Intent Analysis Agent. Respond only with valid JSON."

INTENT_USER = """You are an Intent Analysis Agent. Analyze the purpose of a paragraph within its document context.

{header}

{previous_block}
PARAGRAPH TO ANALYZE:
{paragraph}
{next_block}

Analyze this paragraph's INTENT - what it's trying to accomplish, not just what it says.

Respond with a JSON object:
{{
  "purpose": "<1-2 sentence description of what this paragraph aims to accomplish>",
  "connection_to_previous": "<how it builds on the previous paragraph, or null if first>",
  "connection_to_next": "<how it sets up the next paragraph, or null if last>",
  "role_in_goals": "<how this paragraph contributes to the document's overall goals>"
}}

Focus on INTENT and FUNCTION, not content summary.
Return ONLY the JSON object."""


def _preview(text: str) -> str:
    if len(text) <= NEIGHBOUR_PREVIEW_CHARS:
        return text
    return text[:NEIGHBOUR_PREVIEW_CHARS] + "..."


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) and value else None


async def analyze_paragraph_intent(
    client: CompletionClient,
    paragraph: str,
    previous_paragraph: str | None = None,
    next_paragraph: str | None = None,
    section_name: str | None = None,
    section_purpose: str | None = None,
    document_title: str | None = None,
    goals: DocumentGoals | None = None,
) -> ParagraphIntent:
    """Infer a paragraph's purpose and its links to its neighbours."""
    header_lines = []
    if document_title:
        header_lines.append(f"DOCUMENT: {document_title}")
    if section_name:
        header_lines.append(f"SECTION: {section_name}")
    if section_purpose:
        header_lines.append(f"SECTION PURPOSE: {section_purpose}")
    if goals:
        header_lines.append("DOCUMENT GOALS:")
        header_lines.append(f"Summary: {goals.summary}")
        header_lines.extend(f"  {i}. {o}" for i, o in enumerate(goals.objectives, start=1))

    prompt = INTENT_USER.format(
        header="\n".join(header_lines),
        previous_block=f"PREVIOUS PARAGRAPH:\n{_preview(previous_paragraph)}\n" if previous_paragraph else "",
        paragraph=paragraph,
        next_block=f"\nNEXT PARAGRAPH:\n{_preview(next_paragraph)}" if next_paragraph else "",
    )

    result = await client.complete(
        completion_request(
            system=INTENT_SYSTEM,
            user=prompt,
            temperature=INTENT_TEMPERATURE,
            chain="analyze_paragraph_intent",
        )
    )

    parsed = extract_json_object(result.content)
    if parsed is None:
        logger.warning("Paragraph intent response was not valid JSON")
        return ParagraphIntent(purpose=UNKNOWN_INTENT)

    return ParagraphIntent(
        purpose=_optional_str(parsed.get("purpose")) or UNKNOWN_INTENT,
        connection_to_previous=_optional_str(parsed.get("connection_to_previous")),
        connection_to_next=_optional_str(parsed.get("connection_to_next")),
        role_in_goals=_optional_str(parsed.get("role_in_goals")),
    )
