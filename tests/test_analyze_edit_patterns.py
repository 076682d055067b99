"""Tests for advisory edit pattern analysis."""

import json

import pytest

from app.chains.analyze_edit_patterns import analyze_edit_patterns
from app.core.errors import CompletionServiceError
from app.core.schemas_document import EditDecision, EditDecisionType
from app.core.schemas_style import StyleProfile


def _decisions(*kinds: EditDecisionType) -> list[EditDecision]:
    return [
        EditDecision(original_text=f"o{i}", suggested_edit=f"s{i}", final_text=f"f{i}", decision=k)
        for i, k in enumerate(kinds)
    ]


@pytest.mark.asyncio
async def test_too_few_decisions_skip_the_call(fake_client):
    report = await analyze_edit_patterns(
        fake_client, _decisions(EditDecisionType.REJECTED, EditDecisionType.REJECTED), StyleProfile()
    )
    assert report.patterns == []
    assert fake_client.requests == []


@pytest.mark.asyncio
async def test_too_few_rejections_skip_the_call(fake_client):
    decisions = _decisions(EditDecisionType.ACCEPTED, EditDecisionType.ACCEPTED, EditDecisionType.REJECTED)
    report = await analyze_edit_patterns(fake_client, decisions, StyleProfile())
    assert report.suggested_adjustments == {}
    assert fake_client.requests == []


@pytest.mark.asyncio
async def test_report_is_sanitised(fake_client):
    fake_client.script(
        "analyze_edit_patterns",
        json.dumps(
            {
                "patterns": ["User removes hedges", 42],
                "suggested_adjustments": {
                    "verbosity_adjust": 5,
                    "formality_adjust": "more",
                    "hedging_adjust": None,
                    "additional_avoid_words": ["perhaps", ""],
                },
            }
        ),
    )
    decisions = _decisions(EditDecisionType.ACCEPTED, EditDecisionType.PARTIAL, EditDecisionType.REJECTED)

    report = await analyze_edit_patterns(fake_client, decisions, StyleProfile())

    assert report.patterns == ["User removes hedges"]
    assert report.suggested_adjustments == {"verbosity_adjust": 2.0, "additional_avoid_words": ["perhaps"]}
    prompt = fake_client.requests[0].messages[-1].content
    assert "Decision 1 (partial)" in prompt
    assert '"s1..."' in prompt
    assert '"s0..."' not in prompt


@pytest.mark.asyncio
async def test_service_failure_propagates(fake_client):
    fake_client.script("analyze_edit_patterns", CompletionServiceError("down"))
    decisions = _decisions(EditDecisionType.REJECTED, EditDecisionType.REJECTED, EditDecisionType.PARTIAL)

    with pytest.raises(CompletionServiceError):
        await analyze_edit_patterns(fake_client, decisions, StyleProfile())
