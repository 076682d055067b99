"""Merge a document's framing guidance into fewer, clearer directives."""

from app.core.errors import InvalidInputError
from app.core.llm import CompletionClient, completion_request, extract_json_array
from app.core.logging import get_logger

logger = get_logger(__name__)

MIN_GUIDANCE_TO_CONSOLIDATE = 2
GUIDANCE_TEMPERATURE = 0.3
GUIDANCE_MAX_TOKENS = 1000

GUIDANCE_SYSTEM = "You consolidate writing guidance. Respond only with a JSON array of strings."

GUIDANCE_USER = """You are helping consolidate a list of writing guidance/constraints into fewer, clearer directives.

Current guidance items:
{guidance_text}
{rules_block}
Your task:
1. Identify overlapping or related guidance items
2. Merge them into fewer, more comprehensive directives
3. Preserve all important constraints - don't lose any meaning
4. Aim for 2-4 consolidated items (unless the originals are truly distinct)
5. Each consolidated item should be clear and actionable

Return ONLY a JSON array of consolidated guidance strings, nothing else.
Example: ["Focus on clarity and practical examples", "Use formal academic tone with minimal jargon"]"""


async def consolidate_framing_guidance(
    client: CompletionClient,
    guidance: list[str],
    rules: list[str] | None = None,
) -> list[str]:
    """
    Consolidate framing guidance items.

    Rules are shown for context only and are never folded into the result.
    An undecodable or empty response keeps the original guidance.

    Raises:
        InvalidInputError: Fewer than two guidance items
        CompletionServiceError: The completion call failed or timed out
    """
    if len(guidance) < MIN_GUIDANCE_TO_CONSOLIDATE:
        raise InvalidInputError(
            f"Need at least {MIN_GUIDANCE_TO_CONSOLIDATE} guidance items to consolidate"
        )

    rules_block = ""
    if rules:
        rules_block = "\nRelated rules (for context, don't include these):\n" + "\n".join(
            f"- {r}" for r in rules
        ) + "\n"

    prompt = GUIDANCE_USER.format(
        guidance_text="\n".join(f"{i}. {g}" for i, g in enumerate(guidance, start=1)),
        rules_block=rules_block,
    )
    result = await client.complete(
        completion_request(
            system=GUIDANCE_SYSTEM,
            user=prompt,
            temperature=GUIDANCE_TEMPERATURE,
            max_tokens=GUIDANCE_MAX_TOKENS,
            chain="consolidate_guidance",
        )
    )

    parsed = extract_json_array(result.content)
    consolidated = [g.strip() for g in parsed or [] if isinstance(g, str) and g.strip()]
    if not consolidated:
        logger.warning("Guidance consolidation response was unusable, keeping original guidance")
        return list(guidance)

    logger.info(f"Consolidated {len(guidance)} guidance items into {len(consolidated)}")
    return consolidated
