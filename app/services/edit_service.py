"""Service facade over the edit loop, learning engine and preference store.

Every load-modify-save of a document's preferences runs under that
document's lock. Model calls never happen while holding a lock for a
different document.
"""

from collections.abc import Callable
from functools import lru_cache
from typing import Any

from app.chains.analyze_edit_patterns import EditPatternReport, analyze_edit_patterns
from app.chains.consolidate_guidance import consolidate_framing_guidance
from app.chains.critique_edit import critique_edit
from app.chains.extract_constraints import (
    ExtractedConstraints,
    extract_constraints,
    merge_constraints_into_adjustments,
)
from app.chains.learn_from_decision import learn_from_decision
from app.chains.synthesize_document_goals import (
    default_goals,
    merge_goals,
    should_update_goals,
    synthesize_document_goals,
)
from app.core.cancellation import CancellationToken
from app.core.document_locks import DocumentLockRegistry
from app.core.errors import DocumentNotFoundError
from app.core.explicit_feedback import get_edit_stats, learn_from_explicit_feedback, merge_to_overlay
from app.core.llm import CompletionClient, get_completion_client
from app.core.logging import get_logger
from app.core.schemas_critique import CritiqueAnalysis
from app.core.schemas_document import (
    DocumentAdjustments,
    DocumentGoals,
    DocumentPreferences,
    EditDecision,
    EditStats,
    FeedbackCategory,
)
from app.core.schemas_orchestration import OrchestrationRequest, OrchestrationResult
from app.core.schemas_style import AudienceOverlay, StyleProfile
from app.db import document_preferences as prefs_db
from app.db.document_preferences import PreferenceStore, get_or_create_preferences, get_preference_store
from app.graphs.edit_orchestration_graph import run_edit_orchestration

logger = get_logger(__name__)


class EditService:
    """Entry point used by the HTTP layer and by embedding applications."""

    def __init__(
        self,
        client: CompletionClient | None,
        store: PreferenceStore,
        locks: DocumentLockRegistry | None = None,
        client_factory: Callable[[str | None], CompletionClient] = get_completion_client,
    ) -> None:
        self._client = client
        self._client_factory = client_factory
        self.store = store
        self.locks = locks or DocumentLockRegistry()

    def client_for(self, model: str | None = None) -> CompletionClient:
        """Configured client, or a fresh one when a model override is given."""
        if model:
            return self._client_factory(model)
        if self._client is None:
            self._client = self._client_factory(None)
        return self._client

    # =========================================================================
    # Editing
    # =========================================================================

    async def orchestrate_edit(
        self,
        request: OrchestrationRequest,
        cancel_token: CancellationToken | None = None,
        on_chunk: Any = None,
    ) -> OrchestrationResult:
        """Run the edit loop and persist its corrections. Nothing is saved on failure."""
        client = self.client_for(request.model)
        async with self.locks.lock(request.document_id):
            preferences = await get_or_create_preferences(self.store, request.document_id)
            result = await run_edit_orchestration(
                client,
                request,
                preferences,
                cancel_token=cancel_token,
                on_chunk=on_chunk,
            )
            await self.store.save(result.document_preferences)

        logger.info(
            f"Edit for {request.document_id}[{request.paragraph_index}] finished after "
            f"{result.iterations} attempts, alignment {result.critique.alignment_score:.2f}"
        )
        return result

    async def critique_edit(
        self,
        original_text: str,
        suggested_edit: str,
        style: StyleProfile,
        audience: AudienceOverlay | None = None,
        document_id: str | None = None,
        section_type: str | None = None,
    ) -> CritiqueAnalysis:
        """Standalone critique; uses the document's adjustments when a document id is given."""
        adjustments: DocumentAdjustments | None = None
        if document_id:
            existing = await self.store.load(document_id)
            adjustments = existing.adjustments if existing else None
        return await critique_edit(
            self.client_for(),
            original_text=original_text,
            suggested_edit=suggested_edit,
            style=style,
            audience=audience,
            adjustments=adjustments,
            section_type=section_type,
        )

    # =========================================================================
    # Learning
    # =========================================================================

    async def record_decision(
        self,
        document_id: str,
        decision: EditDecision,
        style: StyleProfile,
        audience: AudienceOverlay | None = None,
    ) -> DocumentPreferences:
        """Learn from one terminal decision. Feedback tags on it are applied first."""
        async with self.locks.lock(document_id):
            preferences = await get_or_create_preferences(self.store, document_id)
            if decision.feedback_tags:
                preferences = learn_from_explicit_feedback(
                    preferences,
                    list(decision.feedback_tags),
                    decision.suggested_edit,
                    decision.final_text,
                    decision.instruction,
                )
            updated = await learn_from_decision(self.client_for(), decision, preferences, style, audience)
            await self.store.save(updated)
        return updated

    async def record_feedback(
        self,
        document_id: str,
        feedback: list[FeedbackCategory],
        suggested_edit: str,
        user_version: str,
        instruction: str | None = None,
    ) -> DocumentPreferences:
        async with self.locks.lock(document_id):
            preferences = await get_or_create_preferences(self.store, document_id)
            updated = learn_from_explicit_feedback(
                preferences, feedback, suggested_edit, user_version, instruction
            )
            await self.store.save(updated)
        return updated

    async def analyze_patterns(
        self,
        document_id: str,
        style: StyleProfile,
        audience: AudienceOverlay | None = None,
    ) -> EditPatternReport:
        preferences = await self.store.load(document_id)
        if preferences is None:
            return EditPatternReport()
        return await analyze_edit_patterns(self.client_for(), preferences.edit_history, style, audience)

    # =========================================================================
    # Explicit preference management
    # =========================================================================

    async def get_preferences(self, document_id: str) -> DocumentPreferences:
        preferences = await self.store.load(document_id)
        if preferences is None:
            raise DocumentNotFoundError(f"No preferences for document {document_id}")
        return preferences

    async def get_stats(self, document_id: str) -> EditStats:
        preferences = await self.get_preferences(document_id)
        return get_edit_stats(preferences.edit_history)

    async def reset_adjustments(self, document_id: str) -> DocumentPreferences:
        async with self.locks.lock(document_id):
            return await prefs_db.reset_adjustments(self.store, document_id)

    async def set_sliders(
        self,
        document_id: str,
        verbosity_adjust: float | None = None,
        formality_adjust: float | None = None,
        hedging_adjust: float | None = None,
    ) -> DocumentPreferences:
        async with self.locks.lock(document_id):
            return await prefs_db.set_sliders(
                self.store,
                document_id,
                verbosity_adjust=verbosity_adjust,
                formality_adjust=formality_adjust,
                hedging_adjust=hedging_adjust,
            )

    async def update_goals(
        self,
        document_id: str,
        title: str | None = None,
        content: str | None = None,
        document_type: str | None = None,
        last_document_update: str | None = None,
        user_edits: dict | None = None,
    ) -> DocumentGoals:
        """
        Refresh a document's goals.

        User edits are merged over the current (or default) goals and mark them
        user-edited. Otherwise goals are re-synthesised from content when they
        are missing or stale.
        """
        async with self.locks.lock(document_id):
            preferences = await get_or_create_preferences(self.store, document_id)
            existing = preferences.adjustments.document_goals

            if user_edits:
                goals = merge_goals(user_edits, existing or default_goals())
            elif content is not None and (
                last_document_update is None or should_update_goals(existing, last_document_update)
            ):
                goals = await synthesize_document_goals(
                    self.client_for(),
                    title=title or "",
                    content=content,
                    document_type=document_type,
                    existing_goals=existing,
                )
            else:
                return existing or default_goals()

            adjustments = preferences.adjustments.model_copy(deep=True)
            adjustments.document_goals = goals
            await self.store.save(preferences.touched(adjustments=adjustments))
        return goals

    async def apply_constraints(
        self,
        document_id: str,
        text: str,
        merge: bool = True,
        model: str | None = None,
    ) -> tuple[ExtractedConstraints, DocumentPreferences | None]:
        """Extract constraints from guideline text; merge them into the document unless ``merge`` is off."""
        constraints = await extract_constraints(self.client_for(model), text)
        if not merge:
            return constraints, None

        async with self.locks.lock(document_id):
            preferences = await get_or_create_preferences(self.store, document_id)
            updated = preferences.touched(
                adjustments=merge_constraints_into_adjustments(preferences.adjustments, constraints)
            )
            await self.store.save(updated)
        logger.info(f"Merged extracted constraints into {document_id}")
        return constraints, updated

    async def consolidate_guidance(self, document_id: str, model: str | None = None) -> DocumentPreferences:
        """Replace the document's framing guidance with a consolidated list."""
        async with self.locks.lock(document_id):
            preferences = await self.get_preferences(document_id)
            adjustments = preferences.adjustments.model_copy(deep=True)
            adjustments.additional_framing_guidance = await consolidate_framing_guidance(
                self.client_for(model),
                adjustments.additional_framing_guidance,
                rules=[r.rule for r in adjustments.learned_rules],
            )
            updated = preferences.touched(adjustments=adjustments)
            await self.store.save(updated)
        return updated

    async def create_overlay(self, document_id: str, name: str) -> AudienceOverlay:
        preferences = await self.get_preferences(document_id)
        return merge_to_overlay(preferences, name)


@lru_cache(maxsize=1)
def get_edit_service() -> EditService:
    """Process-wide service; the completion client is built on first model call."""
    return EditService(client=None, store=get_preference_store(), locks=DocumentLockRegistry())


async def orchestrate_edit(
    request: OrchestrationRequest,
    cancel_token: CancellationToken | None = None,
    on_chunk: Any = None,
) -> OrchestrationResult:
    return await get_edit_service().orchestrate_edit(request, cancel_token=cancel_token, on_chunk=on_chunk)
