"""Merge accumulated learned rules into a short list of strong directives.

Never returns an empty list for non-empty input: any decode failure or
service error keeps the most recent rules instead.
"""

from app.core.bounds import clamp, is_finite_number
from app.core.errors import CompletionServiceError
from app.core.llm import CompletionClient, completion_request, extract_json_array
from app.core.logging import get_logger
from app.core.schemas_style import LearnedRule, RuleSource

logger = get_logger(__name__)

CONSOLIDATION_TRIGGER = 8
MAX_CONSOLIDATED_RULES = 8
MIN_RULES_TO_CONSOLIDATE = 5
MIN_CONSOLIDATED_CONFIDENCE = 0.5
MAX_CONSOLIDATED_CONFIDENCE = 0.95
CONSOLIDATION_TEMPERATURE = 0.1

CONSOLIDATE_SYSTEM = "You are a preference consolidation agent. Respond only with valid JSON."

CONSOLIDATE_USER = """You are a preference consolidation agent. Analyze these learned editing rules and consolidate similar ones into stronger, unified directives.

CURRENT RULES:
{rules_text}

TASK:
1. Identify rules that express similar or related preferences
2. Merge similar rules into ONE clear, strong directive
3. Boost confidence when multiple rules agree (max {max_confidence})
4. Keep distinct rules separate
5. Use DIRECT, IMPERATIVE language (e.g., "NEVER add..." not "The user prefers not to...")
6. Maximum {max_rules} consolidated rules

Respond with a JSON array:
[
  {{
    "rule": "<clear, strong directive>",
    "confidence": <{min_confidence}-{max_confidence} based on how many rules support this>,
    "merged_from": [<indices of original rules that were merged, 1-indexed>]
  }}
]

Important:
- If 3+ rules say similar things, confidence should be 0.85+
- If 2 rules agree, confidence should be 0.7-0.8
- Single rules keep their original confidence
- Use strong language: "ALWAYS", "NEVER", "MUST", "DO NOT"

Return ONLY the JSON array."""


def most_recent_rules(rules: list[LearnedRule]) -> list[LearnedRule]:
    return rules[-MAX_CONSOLIDATED_RULES:]


def _parse_consolidated(raw_items: list) -> list[LearnedRule]:
    consolidated: list[LearnedRule] = []
    for item in raw_items:
        if not isinstance(item, dict):
            continue
        rule = item.get("rule")
        if not isinstance(rule, str) or not rule.strip():
            continue
        confidence = item.get("confidence")
        if not is_finite_number(confidence):
            confidence = MIN_CONSOLIDATED_CONFIDENCE
        consolidated.append(
            LearnedRule(
                rule=rule.strip(),
                confidence=clamp(float(confidence), MIN_CONSOLIDATED_CONFIDENCE, MAX_CONSOLIDATED_CONFIDENCE),
                source=RuleSource.INFERRED,
            )
        )
    return consolidated[:MAX_CONSOLIDATED_RULES]


async def consolidate_learned_rules(
    client: CompletionClient,
    rules: list[LearnedRule],
) -> list[LearnedRule]:
    """
    Consolidate rules into at most MAX_CONSOLIDATED_RULES directives.

    Fewer than MIN_RULES_TO_CONSOLIDATE rules are returned as-is without a
    model call.

    Args:
        client: Completion service
        rules: Raw accumulated rules, oldest first

    Returns:
        Consolidated rules, or the most recent rules unmerged on failure
    """
    if len(rules) < MIN_RULES_TO_CONSOLIDATE:
        return rules

    rules_text = "\n".join(
        f"{i}. [confidence: {r.confidence:.2f}] {r.rule}" for i, r in enumerate(rules, start=1)
    )
    prompt = CONSOLIDATE_USER.format(
        rules_text=rules_text,
        max_rules=MAX_CONSOLIDATED_RULES,
        min_confidence=MIN_CONSOLIDATED_CONFIDENCE,
        max_confidence=MAX_CONSOLIDATED_CONFIDENCE,
    )

    try:
        result = await client.complete(
            completion_request(
                system=CONSOLIDATE_SYSTEM,
                user=prompt,
                temperature=CONSOLIDATION_TEMPERATURE,
                chain="consolidate_rules",
            )
        )
    except CompletionServiceError as e:
        logger.error(f"Rule consolidation call failed, keeping recent rules: {e}")
        return most_recent_rules(rules)

    parsed = extract_json_array(result.content)
    consolidated = _parse_consolidated(parsed) if parsed is not None else []
    if not consolidated:
        logger.warning("Failed to parse consolidation response, keeping recent rules")
        return most_recent_rules(rules)

    logger.info(f"Consolidated {len(rules)} rules into {len(consolidated)} rules")
    return consolidated
