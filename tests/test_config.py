"""
Tests for configuration loading and component wiring.
"""

import pytest

from receipt_sorter.agents import GeminiTextClient, create_text_client
from receipt_sorter.config import GeminiSettings, get_settings, validate_all_settings
from receipt_sorter.orchestrator import create_app_components
from receipt_sorter.services.storage import InMemoryDocumentStore


class TestSettings:
    """Environment-driven settings."""

    def test_app_defaults(self):
        app = get_settings().app
        assert app.allow_zero_total is False
        assert app.max_ai_receipts == 400
        assert app.export_default_limit == 1000
        assert app.webhook_port == 3001
        assert app.seed_chunk_size == 10

    def test_app_from_env(self, monkeypatch):
        monkeypatch.setenv("APP_MAX_AI_RECEIPTS", "50")
        get_settings.cache_clear()
        assert get_settings().app.max_ai_receipts == 50

    def test_gemini_not_configured_without_key(self):
        assert get_settings().gemini.is_configured is False

    def test_validate_all_settings_reports_missing_services(self):
        status = validate_all_settings()
        assert status["google_sheets"] is False
        assert "google_sheets_error" in status
        assert status["gemini"] is False
        assert status["app"] is True


class TestComponentWiring:
    """create_app_components picks backends from configuration."""

    def test_memory_fallback_when_sheets_unconfigured(self):
        components = create_app_components(use_storage=True)
        assert components.storage_backend == "memory"

    def test_memory_when_storage_disabled(self):
        assert create_app_components(use_storage=False).storage_backend == "memory"

    def test_explicit_store(self):
        store = InMemoryDocumentStore()
        components = create_app_components(store=store)
        assert components.storage_backend == "custom"
        assert components.repository.store is store

    def test_no_text_client_without_key(self):
        assert create_text_client() is None

    def test_text_client_with_key(self):
        client = create_text_client(GeminiSettings(api_key="test-key"))
        assert isinstance(client, GeminiTextClient)
        assert client.name == "gemini"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
