"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the user-level
flows:
1. Session sync (identity change -> reload the ledger)
2. Add (validate -> upload attachment -> save -> prepend)
3. Edit (validate -> update -> replace in place)
4. Delete and sign-out (request -> confirm | cancel)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is deleted without an explicit confirmation
- Signing out goes through the same confirmation gate
- Every step is audited

Collaborators are passed in, never looked up globally, so each browser
session gets its own store and workflow on top of shared backends.
"""

from typing import Any, NamedTuple, Optional
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import AppSettings, get_settings
from finance_tracker.models.transaction import (
    Aggregates,
    Attachment,
    Transaction,
    User,
)
from finance_tracker.services.session import LocalSessionProvider, SessionProvider
from finance_tracker.services.storage import (
    DocumentStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    StorageError,
)
from finance_tracker.services.upload import (
    AttachmentUploader,
    CloudinaryUploader,
    DropboxUploader,
    UploadError,
)
from finance_tracker.store import TransactionStore
from finance_tracker.validation import TransactionValidator, ValidationError
from finance_tracker.workflow import ConfirmationWorkflow

logger = structlog.get_logger(__name__)


class TrackerFlow:
    """
    Orchestrates one user session.

    The presentation layer talks only to this class. It reads
    `transactions`, `summary()` and the workflow's prompt, and calls the
    user-level operations below.
    """

    def __init__(
        self,
        session: SessionProvider,
        store: TransactionStore,
        workflow: Optional[ConfirmationWorkflow] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._session = session
        self._store = store
        self._workflow = workflow or ConfirmationWorkflow()
        self._audit_logger = audit_logger or AuditLogger()  # Local-only logging

    @property
    def session(self) -> SessionProvider:
        return self._session

    @property
    def store(self) -> TransactionStore:
        return self._store

    @property
    def workflow(self) -> ConfirmationWorkflow:
        return self._workflow

    @property
    def user(self) -> Optional[User]:
        return self._session.current_user

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._store.transactions

    def summary(self) -> Aggregates:
        return self._store.aggregates()

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def sync_session(self) -> bool:
        """
        Reload the ledger if the signed-in identity changed.

        Call on every render; it is a no-op when nothing changed. A pending
        confirmation belongs to the previous identity and is discarded.
        """
        user = self._session.current_user
        if not self._store.needs_sync(user):
            return False

        previous_owner = self._store.owner_id
        owner = user.id if user else None
        sequence = self._store.load_sequence + 1

        if previous_owner != owner:
            if self._workflow.cancel():
                logger.info("confirmation_discarded_on_session_change", owner=previous_owner)
            await self._audit_logger.log_session_changed(previous_owner, owner)

        try:
            current = await self._store.sync_session(user)
        except StorageError as e:
            await self._audit_logger.log_error(
                error_type="load_failed",
                error_message=str(e),
                details={"owner": owner},
            )
            raise

        if not current:
            await self._audit_logger.log_stale_load_discarded(
                owner, sequence, self._store.load_sequence
            )
            return False

        await self._audit_logger.log_transactions_loaded(owner, len(self._store.transactions))
        return True

    async def login(self) -> None:
        self._session.login()
        await self.sync_session()

    async def request_logout(self) -> UUID:
        """Ask the user to confirm signing out."""
        return await self._request("Sign out?", self._logout)

    async def _logout(self) -> None:
        previous_owner = self._store.owner_id
        # Clear first: some providers end the script run on logout
        await self._store.load(None)
        await self._audit_logger.log_session_changed(previous_owner, None)
        self._session.logout()

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def add_transaction(
        self,
        text: Any,
        amount: Any,
        attachment: Optional[Attachment] = None,
    ) -> Transaction:
        """
        Add a transaction for the signed-in user.

        Raises:
            ValidationError, UploadError, StorageError, OperationInProgressError
        """
        user = self._session.current_user
        owner = user.id if user else None
        correlation_id = create_correlation_id()

        try:
            tx = await self._store.add(text, amount, owner, attachment)
        except ValidationError as e:
            await self._audit_logger.log_validation_failed(
                operation="add",
                issues=[issue.model_dump() for issue in e.issues],
                owner=owner,
            )
            raise
        except UploadError as e:
            await self._audit_logger.log_upload_failed(
                filename=attachment.filename if attachment else "",
                error_message=e.message,
                owner=owner or "",
                correlation_id=correlation_id,
            )
            if e.service:
                await self._audit_logger.log_external_service_error(
                    service=e.service,
                    error_message=e.message,
                    correlation_id=correlation_id,
                )
            raise
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                operation="create",
                error_message=str(e),
                owner=owner,
                correlation_id=correlation_id,
            )
            raise

        if attachment is not None and tx.file_url:
            await self._audit_logger.log_attachment_uploaded(
                filename=attachment.filename,
                size_bytes=attachment.size_bytes,
                url=tx.file_url,
                owner=tx.owner,
                correlation_id=correlation_id,
            )
        await self._audit_logger.log_transaction_added(
            transaction_id=tx.id,
            owner=tx.owner,
            text=tx.text,
            amount=str(tx.amount),
            has_attachment=tx.file_url is not None,
            correlation_id=correlation_id,
        )
        return tx

    async def edit_transaction(
        self,
        tx_id: str,
        text: Any,
        amount: Any,
    ) -> Optional[Transaction]:
        """
        Change a transaction's text and amount.

        Returns None if the id is unknown (non-strict mode).
        """
        owner = self._store.owner_id
        try:
            updated = await self._store.edit(tx_id, text, amount)
        except ValidationError as e:
            await self._audit_logger.log_validation_failed(
                operation="edit",
                issues=[issue.model_dump() for issue in e.issues],
                owner=owner,
            )
            raise
        except NotFoundError:
            raise
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                operation="update",
                error_message=str(e),
                owner=owner,
                transaction_id=tx_id,
            )
            raise

        if updated is not None:
            await self._audit_logger.log_transaction_updated(
                transaction_id=tx_id,
                owner=owner,
                changes={"text": updated.text, "amount": str(updated.amount)},
            )
        return updated

    async def request_delete(self, tx_id: str) -> UUID:
        """
        Ask the user to confirm deleting a transaction.

        Raises:
            NotFoundError: If the id is not in the current ledger
        """
        tx = self._store.get(tx_id)
        if tx is None:
            raise NotFoundError(f"Transaction not found: {tx_id}")

        async def delete() -> bool:
            return await self._delete(tx_id)

        return await self._request(f'Delete "{tx.text}"?', delete)

    async def _delete(self, tx_id: str) -> bool:
        owner = self._store.owner_id
        try:
            deleted = await self._store.remove(tx_id)
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                operation="delete",
                error_message=str(e),
                owner=owner,
                transaction_id=tx_id,
            )
            raise
        if deleted:
            await self._audit_logger.log_transaction_deleted(tx_id, owner)
        return deleted

    # -------------------------------------------------------------------------
    # Confirmation
    # -------------------------------------------------------------------------

    async def _request(self, message: str, action) -> UUID:
        request_id = self._workflow.request(message, action)
        await self._audit_logger.log_confirmation_requested(
            message=message,
            correlation_id=request_id,
            owner=self._store.owner_id,
        )
        return request_id

    async def confirm(self) -> Any:
        """Run the pending action. Failures propagate and keep the prompt open."""
        if not self._workflow.is_pending:
            return None

        message = self._workflow.message
        request_id = self._workflow.request_id
        owner = self._store.owner_id
        await self._audit_logger.log_user_confirmed(message, request_id, owner)

        try:
            return await self._workflow.confirm()
        except Exception as e:
            await self._audit_logger.log_confirmed_action_failed(
                message=message,
                error_message=str(e),
                correlation_id=request_id,
                owner=owner,
            )
            raise

    async def cancel(self) -> bool:
        """Dismiss the pending action without running it."""
        message = self._workflow.message
        request_id = self._workflow.request_id
        if not self._workflow.cancel():
            return False
        await self._audit_logger.log_user_cancelled(message, request_id, self._store.owner_id)
        return True


# =============================================================================
# FACTORIES
# =============================================================================

class Backends(NamedTuple):
    """Process-wide collaborators shared by every session."""
    document_store: DocumentStoreInterface
    uploader: Optional[AttachmentUploader]
    audit_logger: AuditLogger


def create_backends(app_settings: Optional[AppSettings] = None) -> Backends:
    """
    Build the document store, uploader and audit logger from configuration.

    If Google Sheets is selected but cannot be configured, falls back to
    the in-memory store so the app still starts.
    """
    app_settings = app_settings or get_settings().app

    sheets_client = None
    document_store: DocumentStoreInterface
    if app_settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            document_store = GoogleSheetsDocumentStore(sheets_client)
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", backend="google_sheets", error=str(e))
            sheets_client = None
            document_store = InMemoryDocumentStore()
    else:
        document_store = InMemoryDocumentStore()

    uploader: Optional[AttachmentUploader] = None
    try:
        if app_settings.upload_backend == "dropbox":
            uploader = DropboxUploader()
        elif app_settings.upload_backend == "cloudinary":
            uploader = CloudinaryUploader()
    except Exception as e:
        logger.warning("uploader_not_configured", backend=app_settings.upload_backend, error=str(e))
        uploader = None

    if app_settings.audit_to_sheets and sheets_client is not None:
        audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
    else:
        audit_logger = AuditLogger()

    return Backends(document_store, uploader, audit_logger)


def create_session_provider(app_settings: Optional[AppSettings] = None) -> SessionProvider:
    """Pick the session provider named in configuration."""
    app_settings = app_settings or get_settings().app

    if app_settings.auth_backend == "streamlit":
        # Imported lazily: the core package must work without a Streamlit runtime
        from finance_tracker.services.session.streamlit_session import StreamlitSessionProvider

        return StreamlitSessionProvider(get_settings().streamlit_auth.provider)

    return LocalSessionProvider(
        User(id=app_settings.local_user_id, display_name=app_settings.local_user_name)
    )


def create_app_components(
    backends: Optional[Backends] = None,
    session: Optional[SessionProvider] = None,
    app_settings: Optional[AppSettings] = None,
) -> TrackerFlow:
    """
    Factory function to create the flow for one session.

    Args:
        backends: Shared collaborators (built from configuration if omitted)
        session: Session provider (built from configuration if omitted)
        app_settings: Overrides the cached application settings

    Returns:
        A TrackerFlow with its own store and confirmation workflow
    """
    app_settings = app_settings or get_settings().app
    backends = backends or create_backends(app_settings)
    session = session or create_session_provider(app_settings)

    store = TransactionStore(
        documents=backends.document_store,
        uploader=backends.uploader,
        validator=TransactionValidator(app_settings),
        strict=app_settings.strict_mode,
    )
    return TrackerFlow(
        session=session,
        store=store,
        workflow=ConfirmationWorkflow(),
        audit_logger=backends.audit_logger,
    )
