"""Tests for generation prompt assembly and the generate chain."""

import pytest

from app.chains.generate_edit import build_generation_prompt, clean_generated_text, generate_edit
from app.core.request_classifier import classify_request
from app.core.schemas_critique import CritiqueIssue, CritiqueIssueType
from app.core.schemas_document import DocumentAdjustments, ParagraphIntent
from app.core.schemas_orchestration import DocumentSection, DocumentStructure, RequestMode
from app.core.schemas_style import StyleProfile

SCENARIO_TEXT = "It is important to note that the results were, in some sense, fairly significant."


def _paragraphs(n: int) -> list[str]:
    return [f"Paragraph body {chr(ord('A') + i)}." for i in range(n)]


class TestBuildGenerationPrompt:
    def test_terse_edit_adds_word_count_requirement(self):
        prompt = build_generation_prompt(
            paragraphs=[SCENARIO_TEXT],
            paragraph_index=0,
            style=StyleProfile(),
            adjustments=DocumentAdjustments(verbosity_adjust=-1.2),
        )
        assert "CRITICAL WORD COUNT REQUIREMENT" in prompt
        assert "Original has approximately 14 words." in prompt
        assert "fewer than 9 words" in prompt

    def test_generation_mode_skips_word_count_requirement(self):
        prompt = build_generation_prompt(
            paragraphs=[SCENARIO_TEXT],
            paragraph_index=0,
            style=StyleProfile(),
            adjustments=DocumentAdjustments(verbosity_adjust=-1.2),
            mode=RequestMode.GENERATION,
            instruction="Write a new paragraph on limitations",
        )
        assert "CRITICAL WORD COUNT REQUIREMENT" not in prompt
        assert "INSTRUCTION: Write a new paragraph on limitations" in prompt

    def test_context_window_is_two_each_side(self):
        paragraphs = _paragraphs(7)
        prompt = build_generation_prompt(
            paragraphs=paragraphs,
            paragraph_index=3,
            style=StyleProfile(),
            adjustments=DocumentAdjustments(),
        )
        assert "Paragraph body A." not in prompt
        assert "[Paragraph 2]: Paragraph body B." in prompt
        assert "[Paragraph 3]: Paragraph body C." in prompt
        assert "PARAGRAPH TO EDIT:\nParagraph body D." in prompt
        assert "[Paragraph 5]: Paragraph body E." in prompt
        assert "[Paragraph 6]: Paragraph body F." in prompt
        assert "Paragraph body G." not in prompt

    def test_structure_intent_and_retry_feedback(self):
        structure = DocumentStructure(
            title="Grant proposal",
            document_type="proposal",
            sections=[DocumentSection(id="s1", name="Aims", type="aims", start_paragraph=0, end_paragraph=1, purpose="State aims")],
            key_terms=["sequencing"],
        )
        prompt = build_generation_prompt(
            paragraphs=_paragraphs(2),
            paragraph_index=1,
            style=StyleProfile(),
            adjustments=DocumentAdjustments(),
            document_structure=structure,
            paragraph_intent=ParagraphIntent(purpose="Introduces aim two"),
            previous_issues=[CritiqueIssue(type=CritiqueIssueType.TONE, description="Too breezy")],
        )
        assert "Title: Grant proposal" in prompt
        assert "CURRENT SECTION: Aims (aims)" in prompt
        assert "- sequencing" in prompt
        assert "Purpose: Introduces aim two" in prompt
        assert "FEEDBACK ON PREVIOUS ATTEMPT:" in prompt
        assert "- tone: Too breezy" in prompt


def test_clean_generated_text():
    assert clean_generated_text("Here's the edited paragraph: \"Short text.\"") == "Short text."
    assert clean_generated_text("  Plain text.  ") == "Plain text."
    assert clean_generated_text('"Unbalanced') == '"Unbalanced'


def test_clean_generated_text_keeps_sentences_starting_with_lead_in_words():
    assert clean_generated_text("The edited version of the bill passed.") == "The edited version of the bill passed."
    assert clean_generated_text("Edited text messages were admissible.") == "Edited text messages were admissible."
    assert clean_generated_text("Edited text.") == "Edited text."
    assert clean_generated_text("Edited version\nThe bill passed.") == "The bill passed."


class TestGenerateEdit:
    @pytest.mark.asyncio
    async def test_edit_mode_uses_low_temperature_and_cap(self, fake_client):
        fake_client.script("generate_edit", "Edited text.")
        classification = classify_request(None)

        text = await generate_edit(
            fake_client,
            paragraphs=["Original text."],
            paragraph_index=0,
            style=StyleProfile(),
            adjustments=DocumentAdjustments(),
            classification=classification,
        )

        assert text == "Edited text."
        request = fake_client.requests_for("generate_edit")[0]
        assert request.temperature == 0.25
        assert request.max_tokens == classification.max_tokens
        assert request.messages[-1].content == "Please edit the paragraph now."

    @pytest.mark.asyncio
    async def test_streaming_delivers_chunks(self, fake_client):
        fake_client.script("generate_edit", "New intro text here.")
        chunks: list[str] = []

        text = await generate_edit(
            fake_client,
            paragraphs=["Original text."],
            paragraph_index=0,
            style=StyleProfile(),
            adjustments=DocumentAdjustments(),
            classification=classify_request("Write an introduction paragraph"),
            instruction="Write an introduction paragraph",
            on_chunk=chunks.append,
        )

        assert text == "New intro text here."
        assert "".join(chunks).strip() == "New intro text here."
        request = fake_client.requests_for("generate_edit")[0]
        assert request.temperature == 0.6
        assert request.max_tokens is None
