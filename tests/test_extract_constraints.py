"""Tests for constraint extraction and merging into document adjustments."""

import json

import pytest

from app.chains.extract_constraints import (
    CONSTRAINT_RULE_CONFIDENCE,
    MAX_TEXT_CHARS,
    ExtractedConstraints,
    extract_constraints,
    merge_constraints_into_adjustments,
    parse_constraints,
)
from app.core.bounds import MAX_AVOID_WORDS
from app.core.errors import InvalidInputError, UnusableModelOutputError
from app.core.schemas_document import DocumentAdjustments
from app.core.schemas_style import LearnedRule, RuleSource

GRANT_CALL = (
    "Applications must not exceed twelve pages. Write for an expert review panel, "
    "define every acronym on first use and emphasise clinical relevance throughout."
)


def _extraction(**overrides) -> str:
    body = {
        "verbosity_adjust": -1.5,
        "formality_adjust": 1.0,
        "hedging_adjust": 0,
        "avoid_words": ["utilize", "very"],
        "prefer_words": {"utilize": "use"},
        "framing_guidance": ["Emphasize clinical relevance"],
        "rules": ["Define acronyms on first use"],
        "summary": "Concise, formal grant application",
    }
    body.update(overrides)
    return json.dumps(body)


class TestParseConstraints:
    def test_sliders_are_clamped_and_non_numbers_dropped(self):
        constraints = parse_constraints(
            '{"verbosity_adjust": -7, "formality_adjust": NaN, "hedging_adjust": "high"}'
        )
        assert constraints.verbosity_adjust == -2.0
        assert constraints.formality_adjust == 0.0
        assert constraints.hedging_adjust == 0.0
        assert constraints.summary == "Constraints extracted from provided text"

    def test_camel_case_keys_and_junk_entries(self):
        constraints = parse_constraints(
            '{"verbosityAdjust": 1, "avoidWords": ["leverage", 3, " "], "preferWords": {"utilize": "use", "x": 1}}'
        )
        assert constraints.verbosity_adjust == 1.0
        assert constraints.avoid_words == ["leverage"]
        assert constraints.prefer_words == {"utilize": "use"}

    def test_undecodable_response_raises(self):
        with pytest.raises(UnusableModelOutputError):
            parse_constraints("The document asks for brevity.")


class TestExtractConstraints:
    @pytest.mark.asyncio
    async def test_short_text_is_rejected_without_model_call(self, fake_client):
        with pytest.raises(InvalidInputError):
            await extract_constraints(fake_client, "Be brief.")
        assert fake_client.requests == []

    @pytest.mark.asyncio
    async def test_long_text_is_truncated(self, fake_client):
        fake_client.script("extract_constraints", _extraction())

        constraints = await extract_constraints(fake_client, "x" * (MAX_TEXT_CHARS + 500))

        request = fake_client.requests_for("extract_constraints")[0]
        assert "[Text truncated...]" in request.messages[-1].content
        assert request.temperature == 0.2
        assert constraints.rules == ["Define acronyms on first use"]


class TestMergeConstraints:
    def test_untouched_sliders_take_extracted_values(self):
        merged = merge_constraints_into_adjustments(
            DocumentAdjustments(), ExtractedConstraints(verbosity_adjust=-1.5, formality_adjust=1.0)
        )
        assert merged.verbosity_adjust == -1.5
        assert merged.formality_adjust == 1.0
        assert merged.hedging_adjust == 0.0

    def test_tuned_sliders_are_averaged(self):
        merged = merge_constraints_into_adjustments(
            DocumentAdjustments(verbosity_adjust=1.0, hedging_adjust=-2.0),
            ExtractedConstraints(verbosity_adjust=-2.0, hedging_adjust=0.0),
        )
        assert merged.verbosity_adjust == -0.5
        assert merged.hedging_adjust == -1.0

    def test_word_lists_are_deduped_and_capped(self):
        existing = DocumentAdjustments(
            additional_avoid_words=[f"word{i}" for i in range(MAX_AVOID_WORDS - 1)],
            additional_prefer_words={"very": "highly"},
        )
        merged = merge_constraints_into_adjustments(
            existing,
            ExtractedConstraints(avoid_words=["word0", "utilize", "leverage"], prefer_words={"utilize": "use"}),
        )
        assert len(merged.additional_avoid_words) == MAX_AVOID_WORDS
        assert merged.additional_avoid_words[-1] == "utilize"
        assert "leverage" not in merged.additional_avoid_words
        assert merged.additional_prefer_words == {"very": "highly", "utilize": "use"}

    def test_rules_are_added_as_document_rules(self):
        existing = DocumentAdjustments(learned_rules=[LearnedRule(rule="Be direct", confidence=0.7)])
        merged = merge_constraints_into_adjustments(
            existing,
            ExtractedConstraints(rules=["Use active voice"], framing_guidance=["Target experts", "Target experts"]),
        )
        assert [r.rule for r in merged.learned_rules] == ["Be direct", "Use active voice"]
        assert merged.learned_rules[-1].source is RuleSource.DOCUMENT
        assert merged.learned_rules[-1].confidence == CONSTRAINT_RULE_CONFIDENCE
        assert merged.additional_framing_guidance == ["Target experts"]
        assert existing.learned_rules[0].rule == "Be direct"
        assert len(existing.learned_rules) == 1


class TestServiceConstraints:
    @pytest.mark.asyncio
    async def test_merge_persists_constraints(self, service, fake_client, store):
        fake_client.script("extract_constraints", _extraction())

        extracted, preferences = await service.apply_constraints("doc-1", GRANT_CALL)

        stored = await store.load("doc-1")
        assert extracted.summary == "Concise, formal grant application"
        assert preferences == stored
        assert stored.adjustments.verbosity_adjust == -1.5
        assert stored.adjustments.additional_avoid_words == ["utilize", "very"]
        assert stored.adjustments.additional_framing_guidance == ["Emphasize clinical relevance"]

    @pytest.mark.asyncio
    async def test_preview_does_not_persist(self, service, fake_client, store):
        fake_client.script("extract_constraints", _extraction())

        extracted, preferences = await service.apply_constraints("doc-1", GRANT_CALL, merge=False)

        assert preferences is None
        assert extracted.verbosity_adjust == -1.5
        assert await store.load("doc-1") is None

    @pytest.mark.asyncio
    async def test_unusable_response_persists_nothing(self, service, fake_client, store):
        fake_client.script("extract_constraints", "I am not sure.")

        with pytest.raises(UnusableModelOutputError):
            await service.apply_constraints("doc-1", GRANT_CALL)

        assert await store.load("doc-1") is None
