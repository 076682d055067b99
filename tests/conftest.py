"""Pytest configuration and fixtures."""

import os

import pytest

from app.core.config import get_settings
from app.core.document_locks import DocumentLockRegistry
from app.db.document_preferences import InMemoryPreferenceStore
from app.services.edit_service import EditService
from tests.fakes.fake_completion import FakeCompletionClient


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["STYLE_ENGINE_ENV"] = "test"
    os.environ["COMPLETION_PROVIDER"] = "anthropic"
    os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ["PREFERENCE_STORE"] = "memory"
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    get_settings.cache_clear()


@pytest.fixture
def fake_client():
    return FakeCompletionClient()


@pytest.fixture
def store():
    return InMemoryPreferenceStore()


@pytest.fixture
def service(fake_client, store):
    return EditService(client=fake_client, store=store, locks=DocumentLockRegistry())
