"""Prompt assembly for style-aware editing.

Re-exports the entry points of the prompt compiler.
"""

from app.context.prompt_compiler import (
    build_document_context_prompt,
    build_goals_prompt,
    build_paragraph_intent_prompt,
    compile_style_prompt,
)

__all__ = [
    "build_document_context_prompt",
    "build_goals_prompt",
    "build_paragraph_intent_prompt",
    "compile_style_prompt",
]
