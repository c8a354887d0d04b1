"""Services package."""

from finance_tracker.services.session import (
    LocalSessionProvider,
    SessionProvider,
)
from finance_tracker.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DocumentStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryAuditStorage,
    InMemoryDocumentStore,
    NotFoundError,
    PersistenceError,
    StorageError,
)
from finance_tracker.services.upload import (
    AttachmentUploader,
    CloudinaryUploader,
    DropboxUploader,
    UploadError,
    UploadFailureReason,
)

__all__ = [
    # Session
    "LocalSessionProvider",
    "SessionProvider",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DocumentStoreInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryAuditStorage",
    "InMemoryDocumentStore",
    "NotFoundError",
    "PersistenceError",
    "StorageError",
    # Upload services
    "AttachmentUploader",
    "CloudinaryUploader",
    "DropboxUploader",
    "UploadError",
    "UploadFailureReason",
]
