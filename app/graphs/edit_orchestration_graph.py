"""LangGraph state machine for the adaptive edit loop.

Topology:
  load_context → generate → critique → decide
                                         ├── accept → finalize → END
                                         └── correct ─┬── retry → generate (loop)
                                                      └── give_up → finalize → END

The graph never persists anything. It returns the best candidate seen plus
the preferences as corrected during this run; the caller saves them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Literal
from uuid import uuid4

from langgraph.graph import END, StateGraph

from app.chains.analyze_paragraph_intent import UNKNOWN_INTENT, analyze_paragraph_intent
from app.chains.critique_edit import critique_edit
from app.chains.generate_edit import generate_edit
from app.core.cancellation import CancellationToken
from app.core.critique_corrections import (
    NORMAL_CORRECTION_STRENGTH,
    STRONG_CORRECTION_STRENGTH,
    apply_corrections_from_critique,
)
from app.core.errors import InvalidEditRequestError
from app.core.logging import get_logger, log_with_context
from app.core.request_classifier import RequestClassification, classify_request
from app.core.schemas_critique import CritiqueAnalysis, CritiqueIssue, empty_critique
from app.core.schemas_document import DocumentAdjustments, DocumentPreferences, ParagraphIntent
from app.core.schemas_orchestration import (
    ConvergenceEntry,
    DocumentSection,
    OrchestrationRequest,
    OrchestrationResult,
)
from app.core.schemas_style import StyleProfile
from app.core.style_bands import apply_adjustments_to_style

logger = get_logger(__name__)

MAX_RETRIES = 3
ALIGNMENT_THRESHOLD = 0.8
STRONG_MISALIGNMENT_THRESHOLD = 0.5
THRESHOLD_MET = "threshold met"


@dataclass
class EditOrchestrationState:
    """State for the edit orchestration graph."""

    # Input
    request: OrchestrationRequest = None  # type: ignore[assignment]
    preferences: DocumentPreferences = None  # type: ignore[assignment]
    client: Any = None
    classification: RequestClassification = None  # type: ignore[assignment]
    cancel_token: CancellationToken | None = None
    on_chunk: Any = None
    run_id: str = ""

    # Context (loaded once)
    section: DocumentSection | None = None
    paragraph_intent: ParagraphIntent | None = None
    adjustments: DocumentAdjustments = field(default_factory=DocumentAdjustments)

    # Current attempt
    attempt: int = 0
    max_retries: int = MAX_RETRIES
    candidate: str = ""
    current_critique: CritiqueAnalysis | None = None
    previous_issues: list[CritiqueIssue] = field(default_factory=list)
    action: Literal["pending", "accept", "correct", "retry", "give_up"] = "pending"

    # Running best + trail
    best_edit: str = ""
    best_critique: CritiqueAnalysis = field(default_factory=empty_critique)
    convergence_history: list[ConvergenceEntry] = field(default_factory=list)

    # Output
    result: OrchestrationResult | None = None


def _check_cancelled(state: EditOrchestrationState, stage: str) -> None:
    if state.cancel_token is not None:
        state.cancel_token.raise_if_cancelled(stage)


def _effective_style(state: EditOrchestrationState) -> StyleProfile:
    return apply_adjustments_to_style(state.request.style, state.adjustments)


def _original(state: EditOrchestrationState) -> str:
    return state.request.paragraphs[state.request.paragraph_index]


async def load_context(state: EditOrchestrationState) -> dict[str, Any]:
    """Locate the section and run the best-effort paragraph-intent analysis."""
    request = state.request
    idx = request.paragraph_index
    structure = request.document_structure
    section = structure.section_for(idx) if structure else None
    adjustments = state.preferences.adjustments.model_copy(deep=True)

    intent: ParagraphIntent | None = None
    _check_cancelled(state, "paragraph intent analysis")
    try:
        intent = await analyze_paragraph_intent(
            state.client,
            paragraph=request.paragraphs[idx],
            previous_paragraph=request.paragraphs[idx - 1] if idx > 0 else None,
            next_paragraph=request.paragraphs[idx + 1] if idx + 1 < len(request.paragraphs) else None,
            section_name=section.name if section else None,
            section_purpose=section.purpose if section else None,
            document_title=structure.title if structure else None,
            goals=adjustments.document_goals,
        )
        if intent.purpose == UNKNOWN_INTENT:
            intent = None
    except Exception as e:
        # Optional enrichment; the loop continues without it
        logger.warning(f"Paragraph intent analysis failed, continuing without it: {e}")
        intent = None

    log_with_context(
        logger,
        logging.INFO,
        "Edit orchestration context loaded",
        run_id=state.run_id,
        document_id=request.document_id,
        paragraph_index=idx,
        mode=state.classification.mode.value,
        section=section.name if section else None,
    )

    return {
        "section": section,
        "paragraph_intent": intent,
        "adjustments": adjustments,
        "best_edit": request.paragraphs[idx],
        "best_critique": empty_critique(),
    }


async def generate(state: EditOrchestrationState) -> dict[str, Any]:
    """Produce the next candidate from the current effective style."""
    attempt = state.attempt + 1
    _check_cancelled(state, f"generate attempt {attempt}")

    candidate = await generate_edit(
        state.client,
        paragraphs=state.request.paragraphs,
        paragraph_index=state.request.paragraph_index,
        style=_effective_style(state),
        adjustments=state.adjustments,
        classification=state.classification,
        instruction=state.request.instruction,
        audience=state.request.audience,
        document_structure=state.request.document_structure,
        paragraph_intent=state.paragraph_intent,
        previous_issues=state.previous_issues if attempt > 1 else None,
        on_chunk=state.on_chunk,
    )

    _check_cancelled(state, f"applying generate attempt {attempt}")
    return {"attempt": attempt, "candidate": candidate}


async def critique(state: EditOrchestrationState) -> dict[str, Any]:
    """Score the candidate against the current effective style."""
    _check_cancelled(state, f"critique attempt {state.attempt}")

    analysis = await critique_edit(
        state.client,
        original_text=_original(state),
        suggested_edit=state.candidate,
        style=_effective_style(state),
        audience=state.request.audience,
        adjustments=state.adjustments,
        section_type=state.section.type if state.section else None,
    )

    _check_cancelled(state, f"applying critique attempt {state.attempt}")
    return {"current_critique": analysis}


def decide(state: EditOrchestrationState) -> dict[str, Any]:
    """Track the running best and accept once the threshold is met."""
    analysis = state.current_critique
    updates: dict[str, Any] = {}

    # Ties keep the earlier attempt
    if analysis.alignment_score > state.best_critique.alignment_score:
        updates["best_edit"] = state.candidate
        updates["best_critique"] = analysis

    if analysis.alignment_score >= ALIGNMENT_THRESHOLD:
        updates["action"] = "accept"
        updates["convergence_history"] = [
            *state.convergence_history,
            ConvergenceEntry(
                attempt=state.attempt,
                alignment_score=analysis.alignment_score,
                adjustments_made=[THRESHOLD_MET],
            ),
        ]
    else:
        updates["action"] = "correct"

    log_with_context(
        logger,
        logging.INFO,
        f"Edit attempt {state.attempt}: {updates['action']}",
        run_id=state.run_id,
        attempt=state.attempt,
        alignment_score=round(analysis.alignment_score, 3),
    )
    return updates


def _slider_deltas(before: DocumentAdjustments, after: DocumentAdjustments) -> list[str]:
    changes = []
    for label, attr in (("Verbosity", "verbosity_adjust"), ("Formality", "formality_adjust"), ("Hedging", "hedging_adjust")):
        old, new = getattr(before, attr), getattr(after, attr)
        if old != new:
            changes.append(f"{label}: {old:.2f} -> {new:.2f}")
    return changes


def correct(state: EditOrchestrationState) -> dict[str, Any]:
    """Apply bounded corrections and decide between retry and give-up."""
    analysis = state.current_critique
    strength = (
        STRONG_CORRECTION_STRENGTH
        if analysis.alignment_score < STRONG_MISALIGNMENT_THRESHOLD
        else NORMAL_CORRECTION_STRENGTH
    )
    corrected = apply_corrections_from_critique(state.adjustments, analysis, strength)

    entry = ConvergenceEntry(
        attempt=state.attempt,
        alignment_score=analysis.alignment_score,
        adjustments_made=_slider_deltas(state.adjustments, corrected),
    )
    action = "give_up" if state.attempt >= state.max_retries else "retry"
    if action == "give_up":
        logger.info(
            f"Edit loop gave up after {state.attempt} attempts, "
            f"best alignment {state.best_critique.alignment_score:.2f}"
        )

    return {
        "adjustments": corrected,
        "previous_issues": list(analysis.issues),
        "convergence_history": [*state.convergence_history, entry],
        "action": action,
    }


def finalize(state: EditOrchestrationState) -> dict[str, Any]:
    """Assemble the result. Preferences carry this run's corrections, unsaved."""
    _check_cancelled(state, "finalizing")
    preferences = state.preferences.touched(adjustments=state.adjustments)
    result = OrchestrationResult(
        edited_text=state.best_edit,
        original_text=_original(state),
        paragraph_index=state.request.paragraph_index,
        critique=state.best_critique,
        iterations=state.attempt,
        convergence_history=list(state.convergence_history),
        document_preferences=preferences,
        mode=state.classification.mode,
    )
    return {"result": result}


def route_after_decide(state: EditOrchestrationState) -> str:
    return "finalize" if state.action == "accept" else "correct"


def route_after_correct(state: EditOrchestrationState) -> str:
    return "generate" if state.action == "retry" else "finalize"


def build_edit_orchestration_graph() -> StateGraph:
    """Construct the LangGraph for one edit request.

    Conditional routing after decide and correct:
      decide  → accept: finalize → END
              → correct
      correct → retry: generate (loop back)
              → give_up: finalize → END
    """
    graph = StateGraph(EditOrchestrationState)

    graph.add_node("load_context", load_context)
    graph.add_node("generate", generate)
    graph.add_node("critique", critique)
    graph.add_node("decide", decide)
    graph.add_node("correct", correct)
    graph.add_node("finalize", finalize)

    graph.add_edge("load_context", "generate")
    graph.add_edge("generate", "critique")
    graph.add_edge("critique", "decide")
    graph.add_conditional_edges("decide", route_after_decide)
    graph.add_conditional_edges("correct", route_after_correct)
    graph.add_edge("finalize", END)

    graph.set_entry_point("load_context")

    return graph.compile()


def validate_request(request: OrchestrationRequest) -> None:
    if not request.paragraphs:
        raise InvalidEditRequestError("Document has no paragraphs")
    if not 0 <= request.paragraph_index < len(request.paragraphs):
        raise InvalidEditRequestError(
            f"Paragraph index {request.paragraph_index} out of range (0-{len(request.paragraphs) - 1})"
        )


async def run_edit_orchestration(
    client: Any,
    request: OrchestrationRequest,
    preferences: DocumentPreferences,
    cancel_token: CancellationToken | None = None,
    on_chunk: Any = None,
) -> OrchestrationResult:
    """
    Run the generate/critique loop for one paragraph.

    Args:
        client: CompletionClient used for every model call
        request: The edit request
        preferences: Loaded document preferences (not mutated)
        cancel_token: Optional cooperative cancellation
        on_chunk: Optional callback receiving streamed generation text

    Returns:
        OrchestrationResult with the best candidate and the convergence trail

    Raises:
        InvalidEditRequestError: Empty document or paragraph index out of range
        CompletionServiceError: A generate or critique call failed
        EditCancelledError: The token was set during the run
    """
    validate_request(request)

    initial_state = EditOrchestrationState(
        request=request,
        preferences=preferences,
        client=client,
        classification=classify_request(request.instruction),
        cancel_token=cancel_token,
        on_chunk=on_chunk,
        run_id=uuid4().hex[:12],
    )

    graph = build_edit_orchestration_graph()
    final_state = await graph.ainvoke(initial_state, {"recursion_limit": 50})

    result = final_state.get("result") if isinstance(final_state, dict) else final_state.result
    if result is None:
        raise RuntimeError("Edit orchestration finished without a result")
    return result
