"""
In-Memory Storage Implementation

The standalone variant: nothing leaves the process and document ids are
random uuid4 tokens generated locally. Also the default backend for tests.

Records are copied on the way in and on the way out so callers can never
mutate stored state behind the store's back.
"""

from typing import Any
from uuid import uuid4

from finance_tracker.models.audit import AuditEvent
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    Document,
    DocumentStoreInterface,
    NotFoundError,
)


class InMemoryDocumentStore(DocumentStoreInterface):
    """Dict-backed document store. Insertion order is preserved per collection."""

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    async def query(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> list[Document]:
        return [
            (doc_id, dict(record))
            for doc_id, record in self._collection(collection).items()
            if all(record.get(field) == value for field, value in filters.items())
        ]

    async def create(self, collection: str, record: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        self._collection(collection)[doc_id] = dict(record)
        return doc_id

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: dict[str, Any],
    ) -> None:
        documents = self._collection(collection)
        if doc_id not in documents:
            raise NotFoundError(f"Document not found: {collection}/{doc_id}")
        documents[doc_id].update(changes)

    async def delete(self, collection: str, doc_id: str) -> bool:
        return self._collection(collection).pop(doc_id, None) is not None


class InMemoryAuditStorage(AuditStorageInterface):
    """Keeps audit events in a list. Useful for tests and local runs."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]
