"""Persistence for per-document preference records."""

import asyncio
from functools import lru_cache
from typing import Any, Protocol, runtime_checkable

from app.core.config import get_settings
from app.core.errors import DocumentNotFoundError
from app.core.logging import get_logger
from app.core.schemas_document import DocumentAdjustments, DocumentPreferences

logger = get_logger(__name__)

TABLE = "document_preferences"


@runtime_checkable
class PreferenceStore(Protocol):
    async def load(self, document_id: str) -> DocumentPreferences | None: ...

    async def save(self, preferences: DocumentPreferences) -> None: ...


class InMemoryPreferenceStore:
    """Process-local store. Records are deep-copied in and out."""

    def __init__(self) -> None:
        self._records: dict[str, DocumentPreferences] = {}

    async def load(self, document_id: str) -> DocumentPreferences | None:
        record = self._records.get(document_id)
        return record.model_copy(deep=True) if record else None

    async def save(self, preferences: DocumentPreferences) -> None:
        self._records[preferences.document_id] = preferences.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._records)


def _to_row(preferences: DocumentPreferences) -> dict[str, Any]:
    payload = preferences.model_dump(mode="json")
    return {
        "document_id": payload["document_id"],
        "base_profile_id": payload["base_profile_id"],
        "adjustments": payload["adjustments"],
        "edit_history": payload["edit_history"],
        "created_at": payload["created_at"],
        "updated_at": payload["updated_at"],
    }


class SupabasePreferenceStore:
    """One row per document in ``document_preferences``; JSON columns for the payload."""

    def __init__(self, client: Any = None) -> None:
        self._client = client

    def _supabase(self) -> Any:
        if self._client is None:
            from app.db.supabase_client import get_supabase

            self._client = get_supabase()
        return self._client

    def _select(self, document_id: str) -> dict[str, Any] | None:
        response = (
            self._supabase()
            .table(TABLE)
            .select("*")
            .eq("document_id", document_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    def _upsert(self, row: dict[str, Any]) -> None:
        self._supabase().table(TABLE).upsert(row, on_conflict="document_id").execute()

    async def load(self, document_id: str) -> DocumentPreferences | None:
        row = await asyncio.to_thread(self._select, document_id)
        if row is None:
            return None
        return DocumentPreferences.model_validate(row)

    async def save(self, preferences: DocumentPreferences) -> None:
        await asyncio.to_thread(self._upsert, _to_row(preferences))
        logger.debug(f"Saved preferences for document {preferences.document_id}")


def create_default_preferences(document_id: str, base_profile_id: str | None = None) -> DocumentPreferences:
    return DocumentPreferences(document_id=document_id, base_profile_id=base_profile_id)


async def get_or_create_preferences(
    store: PreferenceStore,
    document_id: str,
    base_profile_id: str | None = None,
) -> DocumentPreferences:
    """
    Load a document's preferences, creating all-zero defaults on first use.

    A differing base_profile_id on an existing record is updated in place.
    """
    existing = await store.load(document_id)
    if existing is None:
        created = create_default_preferences(document_id, base_profile_id)
        await store.save(created)
        logger.info(f"Created default preferences for document {document_id}")
        return created

    if base_profile_id and existing.base_profile_id != base_profile_id:
        existing = existing.touched(base_profile_id=base_profile_id)
        await store.save(existing)
    return existing


async def reset_adjustments(store: PreferenceStore, document_id: str) -> DocumentPreferences:
    """Restore default adjustments. Edit history and document goals survive."""
    existing = await store.load(document_id)
    if existing is None:
        raise DocumentNotFoundError(f"No preferences for document {document_id}")

    adjustments = DocumentAdjustments(document_goals=existing.adjustments.document_goals)
    updated = existing.touched(adjustments=adjustments)
    await store.save(updated)
    logger.info(f"Reset adjustments for document {document_id}")
    return updated


async def set_sliders(
    store: PreferenceStore,
    document_id: str,
    verbosity_adjust: float | None = None,
    formality_adjust: float | None = None,
    hedging_adjust: float | None = None,
) -> DocumentPreferences:
    """Explicit user slider change. Values are clamped to [-2, 2] by the model."""
    preferences = await get_or_create_preferences(store, document_id)
    adjustments = preferences.adjustments.model_copy(deep=True)
    if verbosity_adjust is not None:
        adjustments.verbosity_adjust = verbosity_adjust
    if formality_adjust is not None:
        adjustments.formality_adjust = formality_adjust
    if hedging_adjust is not None:
        adjustments.hedging_adjust = hedging_adjust

    updated = preferences.touched(adjustments=adjustments)
    await store.save(updated)
    return updated


@lru_cache(maxsize=1)
def get_preference_store() -> PreferenceStore:
    """Build the configured store (memory by default)."""
    backend = get_settings().PREFERENCE_STORE.lower()
    if backend == "supabase":
        return SupabasePreferenceStore()
    if backend != "memory":
        logger.warning(f"Unknown PREFERENCE_STORE '{backend}', using memory")
    return InMemoryPreferenceStore()
