"""Tests for the prompt compiler."""

from app.context.prompt_compiler import (
    DETAILED_NO_CUT_DIRECTIVE,
    EXTREME_COMPRESSION_HEADER,
    build_document_context_prompt,
    build_format_instruction,
    build_goals_prompt,
    compile_style_prompt,
    select_prompt_rules,
)
from app.core.schemas_document import DocumentAdjustments, DocumentGoals
from app.core.schemas_style import AudienceOverlay, FormatRule, LearnedRule, StyleProfile, Verbosity


class TestCompileStylePrompt:
    def test_terse_style_uses_extreme_compression(self):
        prompt = compile_style_prompt(StyleProfile(verbosity=Verbosity.TERSE))
        assert EXTREME_COMPRESSION_HEADER in prompt
        assert DETAILED_NO_CUT_DIRECTIVE not in prompt

    def test_detailed_style_forbids_cutting(self):
        prompt = compile_style_prompt(StyleProfile(verbosity=Verbosity.DETAILED))
        assert DETAILED_NO_CUT_DIRECTIVE in prompt
        assert EXTREME_COMPRESSION_HEADER not in prompt

    def test_global_word_lists_are_not_rendered(self):
        style = StyleProfile(avoid_words=["utilize"], preferred_words={"leverage": "use"})
        prompt = compile_style_prompt(style)
        assert "utilize" not in prompt
        assert "leverage" not in prompt

    def test_formality_blocks(self):
        assert "NEVER use contractions" in compile_style_prompt(StyleProfile(formality_level=5))
        assert "USE contractions everywhere" in compile_style_prompt(StyleProfile(formality_level=1))

    def test_only_confident_rules_most_recent_first(self):
        rules = [
            LearnedRule(rule="Old rule", confidence=0.9),
            LearnedRule(rule="Weak rule", confidence=0.5),
            LearnedRule(rule="New rule", confidence=0.6),
        ]
        prompt = compile_style_prompt(StyleProfile(learned_rules=rules))
        assert "Weak rule" not in prompt
        assert prompt.index("New rule") < prompt.index("Old rule")

    def test_rule_selection_is_capped(self):
        rules = [LearnedRule(rule=f"Rule {i}", confidence=0.9) for i in range(15)]
        selected = select_prompt_rules(rules)
        assert len(selected) == 10
        assert selected[0].rule == "Rule 14"

    def test_audience_overlay_block_keeps_document_verbosity(self):
        overlay = AudienceOverlay(id="ov", name="Grant reviewers", overrides={"verbosity": "detailed"})
        prompt = compile_style_prompt(StyleProfile(verbosity=Verbosity.TERSE), overlay)
        assert "AUDIENCE CONTEXT: Grant reviewers" in prompt
        assert EXTREME_COMPRESSION_HEADER in prompt

    def test_format_phrases_fall_back_to_raw_value(self):
        text = build_format_instruction([FormatRule.EM_DASH, "sparkles"], [FormatRule.NUMBERED])
        assert "Never use: em-dashes, sparkles." in text
        assert "numbered lists for sequential steps" in text
        assert build_format_instruction([], []) == ""


class TestDocumentContextPrompt:
    def test_empty_adjustments_render_nothing(self):
        assert build_document_context_prompt(DocumentAdjustments()) == ""

    def test_terse_band_demands_compression(self):
        prompt = build_document_context_prompt(DocumentAdjustments(verbosity_adjust=-1.0))
        assert "CRITICAL - EXTREME COMPRESSION" in prompt
        assert "30-50%" in prompt

    def test_detailed_band_drops_concise_guidance(self):
        adjustments = DocumentAdjustments(
            verbosity_adjust=1.0,
            additional_framing_guidance=["Be concise at all costs", "Use concrete examples"],
        )
        prompt = build_document_context_prompt(adjustments)
        assert "Be concise at all costs" not in prompt
        assert "- Use concrete examples" in prompt

    def test_substitution_sources_not_repeated_as_avoid_words(self):
        adjustments = DocumentAdjustments(
            additional_prefer_words={"utilize": "use"},
            additional_avoid_words=["utilize", "leverage"],
        )
        prompt = build_document_context_prompt(adjustments)
        assert 'Instead of "utilize", use "use"' in prompt
        assert "ADDITIONAL WORDS TO AVOID: leverage" in prompt

    def test_formality_emphasis_needs_full_step(self):
        assert "MAXIMUM FORMAL" not in build_document_context_prompt(DocumentAdjustments(formality_adjust=0.9))
        assert "MAXIMUM FORMAL" in build_document_context_prompt(DocumentAdjustments(formality_adjust=1.0))


def test_goals_prompt():
    assert build_goals_prompt(None) == ""
    goals = DocumentGoals(summary="Argue for funding", objectives=["Show impact", "Show feasibility"])
    prompt = build_goals_prompt(goals)
    assert "Summary: Argue for funding" in prompt
    assert "2. Show feasibility" in prompt


class TestParagraphIntentPrompt:
    def test_none_gives_empty_block(self):
        from app.context.prompt_compiler import build_paragraph_intent_prompt

        assert build_paragraph_intent_prompt(None) == ""

    def test_only_present_connections_are_listed(self):
        from app.context.prompt_compiler import build_paragraph_intent_prompt
        from app.core.schemas_document import ParagraphIntent

        block = build_paragraph_intent_prompt(
            ParagraphIntent(purpose="Introduce the method", connection_to_next="Sets up the results")
        )
        assert "Purpose: Introduce the method" in block
        assert "Leads into next: Sets up the results" in block
        assert "Builds on previous" not in block
        assert "Role in document goals" not in block
