"""Tests for learned-rule consolidation."""

import json

import pytest

from app.chains.consolidate_rules import consolidate_learned_rules
from app.core.errors import CompletionTimeoutError
from app.core.schemas_style import LearnedRule


def _rules(n: int) -> list[LearnedRule]:
    return [LearnedRule(rule=f"Rule {i}", confidence=0.7) for i in range(n)]


@pytest.mark.asyncio
async def test_few_rules_are_returned_without_a_call(fake_client):
    rules = _rules(4)
    assert await consolidate_learned_rules(fake_client, rules) == rules
    assert fake_client.requests == []


@pytest.mark.asyncio
async def test_confidence_is_clamped_and_list_capped(fake_client):
    items = [{"rule": f"Merged {i}", "confidence": 0.99 if i == 0 else 0.1} for i in range(10)]
    fake_client.script("consolidate_rules", "```json\n" + json.dumps(items) + "\n```")

    consolidated = await consolidate_learned_rules(fake_client, _rules(9))

    assert len(consolidated) == 8
    assert consolidated[0].confidence == 0.95
    assert consolidated[1].confidence == 0.5
    assert fake_client.requests[0].temperature == 0.1


@pytest.mark.asyncio
async def test_empty_parse_keeps_most_recent(fake_client):
    fake_client.script("consolidate_rules", "[]")
    rules = _rules(10)

    consolidated = await consolidate_learned_rules(fake_client, rules)

    assert consolidated == rules[-8:]


@pytest.mark.asyncio
async def test_service_failure_keeps_most_recent(fake_client):
    fake_client.script("consolidate_rules", CompletionTimeoutError("slow"))
    rules = _rules(9)

    consolidated = await consolidate_learned_rules(fake_client, rules)

    assert [r.rule for r in consolidated] == [f"Rule {i}" for i in range(1, 9)]
