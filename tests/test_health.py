"""Tests for the health endpoint and structured log lines."""

import logging

from fastapi.testclient import TestClient

from app.core.logging import StructuredFormatter
from app.main import app

client = TestClient(app)


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["preference_store"] in ("memory", "supabase")
    assert data["completion_provider"] in ("anthropic", "openai")


def test_correlation_fields_lead_the_context():
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "Edit finished", None, None)
    record.run_id = "abc123"
    record.document_id = "doc-1"
    record.extra_data = {"paragraph_index": 2}

    line = StructuredFormatter().format(record)

    assert "run_id=abc123 document_id=doc-1 message=Edit finished paragraph_index=2" in line
