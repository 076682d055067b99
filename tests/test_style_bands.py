"""Tests for slider banding and layering adjustments onto a style."""

import math

import pytest

from app.context.prompt_compiler import CASUAL_BLOCK, FORMAL_BLOCK, NEUTRAL_FORMALITY_BLOCK, compile_style_prompt
from app.core.schemas_document import DocumentAdjustments, EditExample
from app.core.schemas_style import AudienceOverlay, HedgingStyle, StyleProfile, Verbosity
from app.core.style_bands import (
    FormalityBand,
    apply_adjustments_to_style,
    approx_word_count,
    band_formality,
    band_hedging,
    band_verbosity,
    merge_overlay,
    terse_word_target,
)

SCENARIO_TEXT = "It is important to note that the results were, in some sense, fairly significant."


class TestBanding:
    def test_verbosity_band_edges_are_inclusive(self):
        assert band_verbosity(-0.5) is Verbosity.TERSE
        assert band_verbosity(-0.49) is Verbosity.MODERATE
        assert band_verbosity(0.49) is Verbosity.MODERATE
        assert band_verbosity(0.5) is Verbosity.DETAILED

    def test_hedging_band(self):
        assert band_hedging(-2.0) is HedgingStyle.CONFIDENT
        assert band_hedging(0.0) is HedgingStyle.BALANCED
        assert band_hedging(0.5) is HedgingStyle.CAUTIOUS

    def test_formality_band(self):
        assert band_formality(1) is FormalityBand.CASUAL
        assert band_formality(2) is FormalityBand.CASUAL
        assert band_formality(3) is FormalityBand.NEUTRAL
        assert band_formality(4) is FormalityBand.FORMAL

    def test_word_target_for_scenario_paragraph(self):
        assert approx_word_count(SCENARIO_TEXT) == 14
        assert terse_word_target(SCENARIO_TEXT) == 9


class TestApplyAdjustments:
    def test_terse_band_overrides_base_verbosity(self):
        style = StyleProfile(verbosity=Verbosity.DETAILED)
        effective = apply_adjustments_to_style(style, DocumentAdjustments(verbosity_adjust=-1.2))
        assert effective.verbosity is Verbosity.TERSE

    def test_middle_band_keeps_base_style(self):
        style = StyleProfile(verbosity=Verbosity.DETAILED, hedging_style=HedgingStyle.CAUTIOUS)
        effective = apply_adjustments_to_style(
            style, DocumentAdjustments(verbosity_adjust=0.3, hedging_adjust=-0.2)
        )
        assert effective.verbosity is Verbosity.DETAILED
        assert effective.hedging_style is HedgingStyle.CAUTIOUS

    def test_formality_is_clamped(self):
        style = StyleProfile(formality_level=4)
        assert apply_adjustments_to_style(style, DocumentAdjustments(formality_adjust=2.0)).formality_level == 5
        style = StyleProfile(formality_level=3)
        assert apply_adjustments_to_style(style, DocumentAdjustments(formality_adjust=-2.0)).formality_level == 1

    def test_word_lists_are_unioned(self):
        style = StyleProfile(avoid_words=["utilize"], preferred_words={"use": "employ"})
        adjustments = DocumentAdjustments(
            additional_avoid_words=["utilize", "leverage"],
            additional_prefer_words={"show": "demonstrate"},
        )
        effective = apply_adjustments_to_style(style, adjustments)
        assert effective.avoid_words == ["utilize", "leverage"]
        assert effective.preferred_words == {"use": "employ", "show": "demonstrate"}

    def test_base_style_is_not_mutated(self):
        style = StyleProfile()
        apply_adjustments_to_style(style, DocumentAdjustments(additional_avoid_words=["x"]))
        assert style.avoid_words == []


class TestAdjustmentValidators:
    def test_sliders_clamp_on_construction_and_assignment(self):
        adjustments = DocumentAdjustments(verbosity_adjust=5)
        assert adjustments.verbosity_adjust == 2.0
        adjustments.hedging_adjust = -7
        assert adjustments.hedging_adjust == -2.0

    def test_avoid_words_are_deduped_and_capped(self):
        words = [f"word{i}" for i in range(60)] + ["word1"]
        adjustments = DocumentAdjustments(additional_avoid_words=words)
        assert len(adjustments.additional_avoid_words) == 50
        assert len(set(adjustments.additional_avoid_words)) == 50

    def test_only_last_five_examples_are_kept(self):
        examples = [EditExample(suggested_edit=f"s{i}", user_version=f"u{i}") for i in range(7)]
        adjustments = DocumentAdjustments(edit_examples=examples)
        assert [e.suggested_edit for e in adjustments.edit_examples] == ["s2", "s3", "s4", "s5", "s6"]

    def test_example_snippets_are_truncated(self):
        example = EditExample(suggested_edit="a" * 500, user_version="b" * 201)
        assert len(example.suggested_edit) == 200
        assert len(example.user_version) == 200


class TestMergeOverlay:
    def test_overlay_cannot_override_core_settings(self):
        style = StyleProfile(verbosity=Verbosity.TERSE, formality_level=2)
        overlay = AudienceOverlay(
            id="ov-1",
            name="Reviewers",
            overrides={"verbosity": "detailed", "formality_level": 5, "transition_phrases": ["Moreover"]},
        )
        merged = merge_overlay(style, overlay)
        assert merged.verbosity is Verbosity.TERSE
        assert merged.formality_level == 2
        assert merged.transition_phrases == ["Moreover"]

    def test_no_overlay_returns_style(self):
        style = StyleProfile()
        assert merge_overlay(style, None) is style


class TestBounds:
    def test_clamp_limits_both_ends(self):
        from app.core.bounds import clamp, clamp_slider

        assert clamp(7, 1, 5) == 5
        assert clamp(-1, 1, 5) == 1
        assert clamp(3, 1, 5) == 3
        assert clamp_slider(2.7) == 2.0
        assert clamp_slider(-3.0) == -2.0

    def test_dedupe_capped_keeps_order_and_drops_blanks(self):
        from app.core.bounds import dedupe_capped

        assert dedupe_capped(["a", " b ", "", "a", "c"], cap=2) == ["a", "b"]


class TestHalfStepFormality:
    @pytest.mark.parametrize(
        ("level", "adjust", "expected"),
        [
            (2, -0.5, 1.5),
            (2, 0.5, 2.5),
            (3, -0.5, 2.5),
            (3, 0.5, 3.5),
            (4, -0.5, 3.5),
            (4, 0.5, 4.5),
        ],
    )
    def test_half_step_keeps_fractional_level(self, level, adjust, expected):
        effective = apply_adjustments_to_style(
            StyleProfile(formality_level=level), DocumentAdjustments(formality_adjust=adjust)
        )
        assert effective.formality_level == expected

    @pytest.mark.parametrize("adjust", [-0.5, 0.5])
    def test_half_step_from_neutral_stays_neutral(self, adjust):
        effective = apply_adjustments_to_style(
            StyleProfile(formality_level=3), DocumentAdjustments(formality_adjust=adjust)
        )
        prompt = compile_style_prompt(effective)
        assert NEUTRAL_FORMALITY_BLOCK in prompt
        assert FORMAL_BLOCK not in prompt
        assert CASUAL_BLOCK not in prompt

    def test_half_step_bands_are_symmetric(self):
        up = apply_adjustments_to_style(StyleProfile(formality_level=2), DocumentAdjustments(formality_adjust=0.5))
        down = apply_adjustments_to_style(StyleProfile(formality_level=4), DocumentAdjustments(formality_adjust=-0.5))
        assert band_formality(up.formality_level) is FormalityBand.NEUTRAL
        assert band_formality(down.formality_level) is FormalityBand.NEUTRAL


class TestClampEdges:
    def test_clamp_is_idempotent(self):
        from app.core.bounds import clamp

        for value in (-7.0, -2.0, 0.3, 2.0, 9.5):
            once = clamp(value, -2.0, 2.0)
            assert clamp(once, -2.0, 2.0) == once

    def test_clamp_rejects_nan(self):
        from app.core.bounds import clamp

        with pytest.raises(ValueError):
            clamp(math.nan, 0.0, 1.0)

    def test_infinities_saturate(self):
        from app.core.bounds import clamp

        assert clamp(math.inf, 0.0, 1.0) == 1.0
        assert clamp(-math.inf, 0.0, 1.0) == 0.0

    def test_is_finite_number(self):
        from app.core.bounds import is_finite_number

        assert is_finite_number(0)
        assert is_finite_number(-1.5)
        assert not is_finite_number(math.nan)
        assert not is_finite_number(math.inf)
        assert not is_finite_number(True)
        assert not is_finite_number("0.5")

    def test_non_finite_model_values_fall_back_to_defaults(self):
        from app.core.schemas_style import LearnedRule

        assert DocumentAdjustments(verbosity_adjust=math.nan).verbosity_adjust == 0.0
        assert StyleProfile(formality_level=math.nan).formality_level == 3
        assert LearnedRule(rule="Be brief", confidence=math.nan).confidence == 0.5
