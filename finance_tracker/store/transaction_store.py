"""
Transaction Store

In-memory view of the signed-in user's transactions, kept in step with the
remote `transactions` collection.

RULES:
1. The in-memory sequence changes only after the document store confirmed
   the write. A failed write leaves it exactly as it was.
2. The sequence is most-recent-first; new entries are prepended.
3. The sequence only ever holds the loaded owner's records.
4. At most one mutation (add/edit/remove) is in flight at a time.
5. Only the newest load may replace the sequence. Results of a load that
   was overtaken by a later one are dropped.

Input is validated before anything touches the network.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from pydantic import ValidationError as ModelValidationError

from finance_tracker.models.transaction import (
    Aggregates,
    Attachment,
    Transaction,
    User,
    utcnow,
)
from finance_tracker.services.storage import (
    Document,
    DocumentStoreInterface,
    NotFoundError,
)
from finance_tracker.services.upload import (
    AttachmentUploader,
    UploadError,
    UploadFailureReason,
)
from finance_tracker.store.aggregates import compute_aggregates
from finance_tracker.validation import TransactionValidator

logger = structlog.get_logger(__name__)


class OperationInProgressError(Exception):
    """A mutation was issued while another one was still running."""

    def __init__(self, running: str, requested: str):
        self.running = running
        self.requested = requested
        super().__init__(
            f"Cannot {requested} while a previous {running} is still in progress"
        )


class TransactionStore:
    """
    Owns the in-memory transaction sequence for one session.

    Collaborators are injected: the document store always, the attachment
    uploader only when attachments are enabled.
    """

    collection = "transactions"

    def __init__(
        self,
        documents: DocumentStoreInterface,
        uploader: Optional[AttachmentUploader] = None,
        validator: Optional[TransactionValidator] = None,
        strict: bool = False,
    ):
        """
        Args:
            documents: Remote document collection client
            uploader: Attachment uploader, or None to disable attachments
            validator: Input validator (defaults to one built from settings)
            strict: Raise NotFoundError when editing an unknown id
        """
        self._documents = documents
        self._uploader = uploader
        self._validator = validator or TransactionValidator()
        self._strict = strict

        self._transactions: list[Transaction] = []
        self._owner_id: Optional[str] = None
        self._synced = False
        self._load_sequence = 0
        self._in_flight: Optional[str] = None

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        """Most recent first. Read-only snapshot."""
        return tuple(self._transactions)

    @property
    def owner_id(self) -> Optional[str]:
        return self._owner_id

    @property
    def is_busy(self) -> bool:
        """True while a mutation is in flight; the UI disables its controls."""
        return self._in_flight is not None

    @property
    def accepts_attachments(self) -> bool:
        return self._uploader is not None

    @property
    def validator(self) -> TransactionValidator:
        return self._validator

    def get(self, tx_id: str) -> Optional[Transaction]:
        for tx in self._transactions:
            if tx.id == tx_id:
                return tx
        return None

    def aggregates(self) -> Aggregates:
        return compute_aggregates(self._transactions)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def needs_sync(self, user: Optional[User]) -> bool:
        """True if `user` is not the owner of the loaded sequence."""
        owner_id = user.id if user else None
        return not self._synced or owner_id != self._owner_id

    async def sync_session(self, user: Optional[User]) -> bool:
        """
        Reload if the session identity differs from the loaded owner.

        Returns:
            True if a load was issued and its result applied. False when
            nothing changed or the load was overtaken by a newer one.
        """
        if not self.needs_sync(user):
            return False
        return await self.load(user.id if user else None)

    async def load(self, owner_id: Optional[str]) -> bool:
        """
        Replace the in-memory sequence with the owner's records.

        An absent owner clears the sequence without a network call.

        Returns:
            False if the result was discarded because a newer load was issued

        Raises:
            StorageError: If the query fails (the sequence is cleared and
                the next sync loads again)
        """
        self._load_sequence += 1
        sequence = self._load_sequence
        self._owner_id = owner_id or None
        self._synced = True

        if not owner_id:
            self._transactions = []
            logger.debug("transactions_cleared")
            return True

        try:
            documents = await self._documents.query(self.collection, {"owner": owner_id})
        except Exception:
            if sequence == self._load_sequence:
                # Never keep showing the previous owner's records
                self._transactions = []
                self._synced = False
            raise

        if sequence != self._load_sequence:
            logger.warning(
                "stale_load_discarded",
                owner=owner_id,
                sequence=sequence,
                latest=self._load_sequence,
            )
            return False

        self._transactions = self._to_sequence(owner_id, documents)
        logger.debug("transactions_loaded", owner=owner_id, count=len(self._transactions))
        return True

    @property
    def load_sequence(self) -> int:
        """Number of loads issued so far."""
        return self._load_sequence

    def _to_sequence(self, owner_id: str, documents: list[Document]) -> list[Transaction]:
        transactions = []
        # Newest insertion first, so ties on created_at keep that order
        for doc_id, record in reversed(documents):
            try:
                tx = Transaction.from_record(doc_id, record)
            except ModelValidationError as e:
                logger.warning("malformed_transaction_skipped", id=doc_id, error=str(e))
                continue
            if tx.owner != owner_id:
                logger.warning("foreign_transaction_skipped", id=doc_id, owner=tx.owner)
                continue
            transactions.append(tx)

        transactions.sort(key=lambda tx: tx.created_at, reverse=True)
        return transactions

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @contextmanager
    def _exclusive(self, operation: str) -> Iterator[None]:
        if self._in_flight is not None:
            raise OperationInProgressError(self._in_flight, operation)
        self._in_flight = operation
        try:
            yield
        finally:
            self._in_flight = None

    async def add(
        self,
        text: Any,
        amount: Any,
        owner_id: Optional[str],
        attachment: Optional[Attachment] = None,
    ) -> Transaction:
        """
        Create a transaction, uploading its attachment first.

        Raises:
            ValidationError: Invalid input; nothing was sent anywhere
            OperationInProgressError: Another mutation is still running
            UploadError: The attachment could not be uploaded; nothing was saved
            StorageError: The document store rejected the write
        """
        clean_text, clean_amount = self._validator.ensure_valid(
            text,
            amount,
            owner_id=owner_id,
            attachment=attachment,
        )

        with self._exclusive("add"):
            file_url = None
            if attachment is not None:
                file_url = await self._upload(attachment)

            record = {
                "text": clean_text,
                "amount": clean_amount,
                "owner": owner_id,
                "fileUrl": file_url,
                "created_at": utcnow(),
            }
            doc_id = await self._documents.create(self.collection, record)
            tx = Transaction.from_record(doc_id, record)

            # The session may have moved on while we were waiting
            if owner_id == self._owner_id:
                self._transactions.insert(0, tx)
            else:
                logger.info("added_for_previous_owner", id=doc_id, owner=owner_id)
            return tx

    async def _upload(self, attachment: Attachment) -> str:
        if self._uploader is None:
            raise UploadError(
                "Attachment uploads are not configured",
                reason=UploadFailureReason.NOT_CONFIGURED,
            )
        return await self._uploader.upload(attachment)

    async def edit(self, tx_id: str, text: Any, amount: Any) -> Optional[Transaction]:
        """
        Replace a transaction's text and amount. The attachment is untouched.

        Returns:
            The updated transaction, or None for an unknown id (non-strict mode)

        Raises:
            ValidationError: Invalid input; nothing was sent anywhere
            NotFoundError: Unknown id in strict mode
            OperationInProgressError: Another mutation is still running
            StorageError: The document store rejected the write
        """
        clean_text, clean_amount = self._validator.ensure_valid(
            text,
            amount,
            require_owner=False,
        )

        current = self.get(tx_id)
        if current is None:
            if self._strict:
                raise NotFoundError(f"Transaction not found: {tx_id}")
            logger.warning("edit_unknown_transaction", id=tx_id)
            return None

        with self._exclusive("edit"):
            try:
                await self._documents.update(
                    self.collection,
                    tx_id,
                    {"text": clean_text, "amount": clean_amount},
                )
            except NotFoundError:
                if self._strict:
                    raise
                logger.warning("edit_missing_remote_transaction", id=tx_id)
                return None

            updated = current.with_changes(clean_text, clean_amount)
            self._replace(updated)
            return updated

    def _replace(self, updated: Transaction) -> None:
        for index, tx in enumerate(self._transactions):
            if tx.id == updated.id:
                self._transactions[index] = updated
                return

    async def remove(self, tx_id: str) -> bool:
        """
        Delete a transaction remotely, then locally.

        Callers must only reach this through a confirmed request.

        Only ids in the loaded owner's sequence are deleted; anything else
        is refused without a network call.

        Returns:
            True if the document store had the record. False for an id that
            is not in the sequence (non-strict mode).

        Raises:
            NotFoundError: Unknown id in strict mode
            OperationInProgressError: Another mutation is still running
            StorageError: The document store rejected the delete
        """
        if self.get(tx_id) is None:
            if self._strict:
                raise NotFoundError(f"Transaction not found: {tx_id}")
            logger.warning("remove_unknown_transaction", id=tx_id, owner=self._owner_id)
            return False

        with self._exclusive("remove"):
            deleted = await self._documents.delete(self.collection, tx_id)
            self._transactions = [tx for tx in self._transactions if tx.id != tx_id]
            return deleted
