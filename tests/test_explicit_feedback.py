"""Tests for explicit feedback, edit stats and overlay promotion."""

import pytest

from app.core.explicit_feedback import (
    FEEDBACK_RULES,
    get_edit_stats,
    learn_from_explicit_feedback,
    merge_to_overlay,
)
from app.core.schemas_document import (
    DocumentAdjustments,
    DocumentPreferences,
    EditDecision,
    EditDecisionType,
    FeedbackCategory,
)
from app.core.schemas_style import HedgingStyle, LearnedRule, RuleSource, Verbosity


def _preferences(**adjustments) -> DocumentPreferences:
    return DocumentPreferences(document_id="doc-1", adjustments=DocumentAdjustments(**adjustments))


class TestExplicitFeedback:
    def test_new_rule_and_example(self):
        updated = learn_from_explicit_feedback(
            _preferences(), [FeedbackCategory.TOO_VERBOSE], "Long suggestion.", "Short."
        )

        rule = updated.adjustments.learned_rules[0]
        assert rule.rule == FEEDBACK_RULES[FeedbackCategory.TOO_VERBOSE]
        assert rule.confidence == 0.85
        assert rule.source is RuleSource.EXPLICIT
        example = updated.adjustments.edit_examples[0]
        assert example.user_version == "Short."
        assert example.feedback == [FeedbackCategory.TOO_VERBOSE]

    def test_repeat_feedback_boosts_existing_rule(self):
        first = learn_from_explicit_feedback(_preferences(), [FeedbackCategory.TOO_FORMAL], "a", "b")
        second = learn_from_explicit_feedback(first, [FeedbackCategory.TOO_FORMAL], "c", "d")

        assert len(second.adjustments.learned_rules) == 1
        assert second.adjustments.learned_rules[0].confidence == 0.95
        assert len(second.adjustments.edit_examples) == 2

    def test_other_adds_no_rule(self):
        updated = learn_from_explicit_feedback(_preferences(), [FeedbackCategory.OTHER], "a", "b")
        assert updated.adjustments.learned_rules == []
        assert len(updated.adjustments.edit_examples) == 1

    def test_sliders_never_move(self):
        preferences = _preferences(verbosity_adjust=0.7)
        updated = learn_from_explicit_feedback(
            preferences, [FeedbackCategory.TOO_TERSE, FeedbackCategory.TOO_CASUAL], "a", "b"
        )
        assert updated.adjustments.verbosity_adjust == 0.7
        assert updated.adjustments.formality_adjust == 0.0
        assert preferences.adjustments.learned_rules == []


def _decision(kind: EditDecisionType) -> EditDecision:
    return EditDecision(original_text="o", suggested_edit="s", final_text="f", decision=kind)


def test_edit_stats():
    history = [
        _decision(EditDecisionType.ACCEPTED),
        _decision(EditDecisionType.ACCEPTED),
        _decision(EditDecisionType.PARTIAL),
        _decision(EditDecisionType.REJECTED),
    ]
    stats = get_edit_stats(history)
    assert (stats.total, stats.accepted, stats.partial, stats.rejected) == (4, 2, 1, 1)
    assert stats.acceptance_rate == pytest.approx(0.625)
    assert get_edit_stats([]).acceptance_rate == 0.0


class TestMergeToOverlay:
    def test_sliders_map_onto_discrete_scales(self):
        preferences = _preferences(
            verbosity_adjust=-1.2,
            formality_adjust=0.6,
            hedging_adjust=1.5,
            additional_avoid_words=["fairly"],
            learned_rules=[LearnedRule(rule="Be direct", confidence=0.8, source=RuleSource.INFERRED)],
        )

        overlay = merge_to_overlay(preferences, "  Reviewers  ")

        assert overlay.name == "Reviewers"
        assert overlay.overrides["verbosity"] == Verbosity.TERSE.value
        assert overlay.overrides["formality_level"] == 4
        assert overlay.overrides["hedging_style"] == HedgingStyle.CAUTIOUS.value
        assert overlay.overrides["avoid_words"] == ["fairly"]
        assert overlay.overrides["learned_rules"][0]["source"] == "document"

    def test_blank_name_is_rejected(self):
        with pytest.raises(ValueError):
            merge_to_overlay(_preferences(), "   ")


class TestOverlayRounding:
    @pytest.mark.parametrize(("adjust", "level"), [(0.5, 4), (-0.5, 2), (1.5, 5), (-1.5, 1), (0.4, 3)])
    def test_half_steps_round_away_from_zero(self, adjust, level):
        overlay = merge_to_overlay(_preferences(formality_adjust=adjust), "Reviewers")
        assert overlay.overrides["formality_level"] == level
