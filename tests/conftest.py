"""
Shared fixtures and fakes.

No real API calls in tests: the document store is in memory and records
every call, and the uploader is a fake that can be told to fail or block.
"""

import asyncio
from typing import Any, Optional

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.config import AppSettings
from finance_tracker.models.transaction import Attachment, User
from finance_tracker.orchestrator import TrackerFlow
from finance_tracker.services.session import LocalSessionProvider
from finance_tracker.services.storage import InMemoryAuditStorage, InMemoryDocumentStore
from finance_tracker.services.upload import AttachmentUploader
from finance_tracker.store import TransactionStore
from finance_tracker.validation import TransactionValidator
from finance_tracker.workflow import ConfirmationWorkflow


class RecordingDocumentStore(InMemoryDocumentStore):
    """In-memory store that records calls and can be told to fail or wait."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}
        self.query_gates: dict[str, asyncio.Event] = {}

    def _enter(self, operation: str, collection: str) -> None:
        self.calls.append((operation, collection))
        if operation in self.failures:
            raise self.failures[operation]

    async def query(self, collection: str, filters: dict[str, Any]):
        self._enter("query", collection)
        gate = self.query_gates.get(filters.get("owner"))
        if gate is not None:
            await gate.wait()
        return await super().query(collection, filters)

    async def create(self, collection: str, record: dict[str, Any]) -> str:
        self._enter("create", collection)
        return await super().create(collection, record)

    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> None:
        self._enter("update", collection)
        await super().update(collection, doc_id, changes)

    async def delete(self, collection: str, doc_id: str) -> bool:
        self._enter("delete", collection)
        return await super().delete(collection, doc_id)

    def operations(self) -> list[str]:
        return [operation for operation, _ in self.calls]


class FakeUploader(AttachmentUploader):
    """Returns a fixed URL, or raises `error`. Waits on `gate` if given."""

    service_name = "fake"

    def __init__(
        self,
        url: str = "https://files.example.com/receipt.pdf?dl=1",
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.url = url
        self.error = error
        self.gate = gate
        self.uploaded: list[Attachment] = []

    async def upload(self, attachment: Attachment) -> str:
        self.uploaded.append(attachment)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.url


@pytest.fixture
def app_settings():
    return AppSettings(
        storage_backend="memory",
        upload_backend="none",
        auth_backend="local",
        max_upload_size_mb=1,
    )


@pytest.fixture
def alice():
    return User(id="alice", display_name="Alice")


@pytest.fixture
def bob():
    return User(id="bob", display_name="Bob")


@pytest.fixture
def documents():
    return RecordingDocumentStore()


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def store(documents, uploader, app_settings):
    return TransactionStore(
        documents=documents,
        uploader=uploader,
        validator=TransactionValidator(app_settings),
    )


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def flow(store, alice, audit_storage):
    return TrackerFlow(
        session=LocalSessionProvider(alice),
        store=store,
        workflow=ConfirmationWorkflow(),
        audit_logger=AuditLogger(audit_storage),
    )


@pytest.fixture
def receipt():
    return Attachment(filename="receipt.pdf", content=b"%PDF-1.4 receipt", mime_type="application/pdf")


@pytest.fixture
def make_uploader():
    return FakeUploader
