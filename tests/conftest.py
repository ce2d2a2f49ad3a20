"""
Shared pytest fixtures: in-memory store, stub model clients, FastAPI TestClient.

No test talks to Google Sheets or Gemini.
"""

import asyncio
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from receipt_sorter.agents.llm import TextGenerationClient
from receipt_sorter.api.dependencies import get_components
from receipt_sorter.api.main import app
from receipt_sorter.audit import AuditLogger
from receipt_sorter.config import get_settings
from receipt_sorter.orchestrator import ReceiptIngestionFlow, create_app_components
from receipt_sorter.services.storage import InMemoryDocumentStore, ReceiptRepository, StorageError
from receipt_sorter.validation import ReceiptValidator


class StubTextClient(TextGenerationClient):
    """Returns a canned response (or raises) and records every prompt."""

    name = "stub"

    def __init__(
        self,
        response: str = "",
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.response = response
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.response


class FailingDocumentStore(InMemoryDocumentStore):
    """In-memory store whose receipt writes and reads fail."""

    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        if collection == "receipts":
            raise StorageError("Store unavailable")
        return await super().add_document(collection, data)

    async def get_documents(self, collection, order_by=None, descending=True, limit=None):
        if collection == "receipts":
            raise StorageError("Store unavailable")
        return await super().get_documents(collection, order_by, descending, limit)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """No credentials from the developer's environment leak into tests."""
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.delenv("APP_ALLOW_ZERO_TOTAL", raising=False)
    monkeypatch.delenv("APP_MAX_AI_RECEIPTS", raising=False)
    monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
    monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def store():
    return InMemoryDocumentStore()


@pytest.fixture()
def repository(store):
    return ReceiptRepository(store)


@pytest.fixture()
def audit_logger(store):
    return AuditLogger(store)


@pytest.fixture()
def ingestion_flow(repository, audit_logger):
    return ReceiptIngestionFlow(
        repository=repository,
        validator=ReceiptValidator(allow_zero_total=False),
        audit_logger=audit_logger,
        source="n8n_workflow",
    )


@pytest.fixture()
def valid_payload():
    return {
        "vendor": "Chipotle",
        "date": "2024-06-25",
        "total": 11.75,
        "category": "Restaurants",
        "currency": "USD",
        "payment_method": "Visa",
        "items": [{"name": "Burrito", "price": 9.25}],
    }


@pytest.fixture()
def sample_receipts():
    return [
        {"id": "r1", "vendor": "A", "total": 10, "category": "X", "date": "2024-05-03"},
        {"id": "r2", "vendor": "B", "total": 100, "category": "Y", "date": "2024-06-10"},
    ]


@pytest.fixture()
def make_client(store):
    """Build a TestClient over the given store and model client."""
    clients = []

    def _make(
        text_client: Optional[TextGenerationClient] = None,
        document_store=None,
    ) -> TestClient:
        components = create_app_components(
            store=document_store or store,
            text_client=text_client,
        )
        app.dependency_overrides[get_components] = lambda: components
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)
    app.dependency_overrides.clear()


@pytest.fixture()
def client(make_client):
    return make_client()


@pytest.fixture()
def stub_client():
    """Factory for stub model clients: stub_client(response=..., error=...)."""
    return StubTextClient


@pytest.fixture()
def failing_store():
    return FailingDocumentStore()
