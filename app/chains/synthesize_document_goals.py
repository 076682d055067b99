"""Synthesize (and evolve) a document's goals from its content."""

from datetime import datetime, timedelta

from app.core.llm import CompletionClient, completion_request, extract_json_object
from app.core.logging import get_logger
from app.core.schemas_document import DocumentGoals
from app.core.schemas_style import utc_now_iso

logger = get_logger(__name__)

GOALS_TEMPERATURE = 0.3
MAX_CONTENT_CHARS = 4000
MAX_OBJECTIVES = 4
GOALS_STALE_AFTER = timedelta(minutes=5)
PLACEHOLDER_SUMMARY = "Document goals not yet analyzed."

GOALS_SYSTEM = "You are a Document Goals Synthesis Agent. Respond only with valid JSON."

GOALS_USER = """You are a Document Goals Synthesis Agent. Analyze a document and synthesize its core goals.

DOCUMENT TITLE: {title}
{type_line}
{existing_block}

DOCUMENT CONTENT (sample):
{content}

Synthesize the document's goals. This should be a COHERENT SYNTHESIS, not a laundry list.

Guidelines:
- Summary should be 2-3 sentences capturing the document's primary aim
- Objectives should be 2-4 CORE aims (not every minor point)
- Main argument should be the central thesis or claim
- Audience needs should describe what the reader seeks from this document
- Success criteria should describe what achieving the goals looks like
{preserve_note}

Respond with a JSON object:
{{
  "summary": "<2-3 sentence synthesis of document aims>",
  "objectives": ["<core objective 1>", "<core objective 2>"],
  "main_argument": "<central thesis or claim>",
  "audience_needs": "<what the reader seeks>",
  "success_criteria": "<what success looks like>"
}}

Return ONLY the JSON object."""

PRESERVE_NOTE = (
    "\nIMPORTANT: The user has edited the existing goals. Preserve their core intent while "
    "potentially refining the language or adding clarity."
)


def default_goals() -> DocumentGoals:
    return DocumentGoals(summary=PLACEHOLDER_SUMMARY)


def _existing_block(goals: DocumentGoals) -> str:
    label = "user-edited, preserve intent" if goals.user_edited else "auto-generated"
    lines = [f"CURRENT GOALS ({label}):", f"Summary: {goals.summary}", "Objectives:"]
    lines.extend(f"  {i}. {o}" for i, o in enumerate(goals.objectives, start=1))
    if goals.main_argument:
        lines.append(f"Main Argument: {goals.main_argument}")
    return "\n".join(lines)


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) and value else None


async def synthesize_document_goals(
    client: CompletionClient,
    title: str,
    content: str,
    document_type: str | None = None,
    existing_goals: DocumentGoals | None = None,
) -> DocumentGoals:
    """
    Create or refresh document goals.

    Locked goals come back unchanged without a model call. The user_edited
    and locked flags of existing goals are preserved.

    Raises:
        CompletionServiceError: The completion call failed or timed out
    """
    if existing_goals and existing_goals.locked:
        return existing_goals

    sample = content[:MAX_CONTENT_CHARS]
    if len(content) > MAX_CONTENT_CHARS:
        sample += "\n[... truncated ...]"

    preserve = bool(existing_goals and existing_goals.user_edited)
    prompt = GOALS_USER.format(
        title=title,
        type_line=f"DOCUMENT TYPE: {document_type}" if document_type else "",
        existing_block=_existing_block(existing_goals) if existing_goals else "",
        content=sample,
        preserve_note=PRESERVE_NOTE if preserve else "",
    )

    result = await client.complete(
        completion_request(
            system=GOALS_SYSTEM,
            user=prompt,
            temperature=GOALS_TEMPERATURE,
            chain="synthesize_document_goals",
        )
    )

    parsed = extract_json_object(result.content)
    if parsed is None:
        logger.warning("Goals synthesis response was not valid JSON, keeping existing goals")
        return existing_goals or default_goals()

    objectives = parsed.get("objectives")
    goals = DocumentGoals(
        summary=_optional_str(parsed.get("summary")) or PLACEHOLDER_SUMMARY,
        objectives=[o for o in objectives if isinstance(o, str)][:MAX_OBJECTIVES]
        if isinstance(objectives, list)
        else [],
        main_argument=_optional_str(parsed.get("main_argument")),
        audience_needs=_optional_str(parsed.get("audience_needs")),
        success_criteria=_optional_str(parsed.get("success_criteria")),
        user_edited=preserve,
        locked=bool(existing_goals and existing_goals.locked),
    )
    logger.info(f"Synthesized goals with {len(goals.objectives)} objectives for '{title}'")
    return goals


def should_update_goals(existing: DocumentGoals | None, last_document_update: str) -> bool:
    """True when goals are missing, or auto-generated and older than the document by >5 min."""
    if existing is None:
        return True
    if existing.locked or existing.user_edited:
        return False
    try:
        goals_time = datetime.fromisoformat(existing.updated_at)
        doc_time = datetime.fromisoformat(last_document_update)
        return doc_time - goals_time > GOALS_STALE_AFTER
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not compare goal timestamps: {e}")
        return False


def merge_goals(user_edits: dict, auto_generated: DocumentGoals) -> DocumentGoals:
    """Overlay user-supplied fields on generated goals; the result is user-edited."""
    fields = ("summary", "objectives", "main_argument", "audience_needs", "success_criteria")
    merged = {f: user_edits[f] if user_edits.get(f) is not None else getattr(auto_generated, f) for f in fields}
    return DocumentGoals(
        **merged,
        updated_at=utc_now_iso(),
        user_edited=True,
        locked=bool(user_edits.get("locked", auto_generated.locked)),
    )
