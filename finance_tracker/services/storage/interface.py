"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a hosted document database later
2. Use in-memory storage for the standalone variant and for testing
3. Keep business logic decoupled from storage implementation

The document store is intentionally minimal: a handful of collections of
schemaless records keyed by a store-generated id. Records are plain dicts;
the transaction store owns the mapping to and from models.
"""

from abc import ABC, abstractmethod
from typing import Any

from finance_tracker.models.audit import AuditEvent

# A stored document: (id, record-without-id)
Document = tuple[str, dict[str, Any]]


class DocumentStoreInterface(ABC):
    """
    Abstract interface for the remote document collection.

    Any storage implementation (Google Sheets, in-memory, a hosted
    document database) must implement these methods.
    """

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> list[Document]:
        """
        Fetch every document whose fields equal all the given filters.

        Args:
            collection: Collection name (e.g., "transactions")
            filters: Field -> required value equality filters

        Returns:
            Matching documents in insertion order

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def create(self, collection: str, record: dict[str, Any]) -> str:
        """
        Persist a new document.

        Returns:
            The generated document id

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: dict[str, Any],
    ) -> None:
        """
        Merge the given fields into an existing document.

        Raises:
            NotFoundError: If the document doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """
        Delete a document by id.

        Returns:
            True if a document was deleted, False if it didn't exist
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


# Remote read/write failures surface under this name in the tracker's error model
PersistenceError = StorageError


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
