"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the hosted storage backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal ledger)
- No transactions (every mutation touches a single row)
- Limited query capabilities (we filter in Python)

Each collection is one worksheet. Row 1 holds the column names, column A
holds the document id, every other column is a record field.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import GoogleSheetsSettings, get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    Document,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
)


# Column mappings for the transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "owner",
    "text",
    "amount",
    "fileUrl",
    "created_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "owner",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _to_cell(value: Any) -> str:
    """Serialize a record value into a sheet cell."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (Decimal, int, float, bool)):
        return str(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


class GoogleSheetsClient:
    """
    Wrapper around the gspread client.

    Handles authentication and worksheet access.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet, writing the header row on creation."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self.get_worksheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsDocumentStore(DocumentStoreInterface):
    """
    Google Sheets implementation of the document store.

    Documents are rows; ids are uuid4 hex tokens generated on create.
    Every value comes back as a string; empty cells come back as None.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._collections = {
            "transactions": (
                self._client.settings.transactions_sheet_name,
                TRANSACTION_COLUMNS,
            ),
        }

    def _sheet(self, collection: str) -> tuple[gspread.Worksheet, list[str]]:
        try:
            title, columns = self._collections[collection]
        except KeyError:
            raise StorageError(f"Unknown collection: {collection}")
        try:
            sheet = self._client.get_worksheet(title, columns)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to open worksheet {title}: {e}")
        return sheet, columns

    @staticmethod
    def _row_to_document(header: list[str], row: list[str]) -> Document:
        record = {}
        for index, name in enumerate(header[1:], start=1):
            value = row[index] if index < len(row) else ""
            record[name] = value if value != "" else None
        return row[0], record

    @staticmethod
    def _find_row(all_rows: list[list[str]], doc_id: str) -> Optional[int]:
        """1-based sheet row index of a document, skipping the header."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == doc_id:
                return idx
        return None

    async def query(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> list[Document]:
        sheet, columns = self._sheet(collection)
        try:
            all_rows = sheet.get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to read {collection}: {e}")

        header = all_rows[0] if all_rows else columns
        wanted = {field: _to_cell(value) for field, value in filters.items()}

        documents = []
        for row in all_rows[1:]:
            if not row or not row[0]:  # Skip empty rows
                continue
            doc_id, record = self._row_to_document(header, row)
            if all(_to_cell(record.get(field)) == value for field, value in wanted.items()):
                documents.append((doc_id, record))
        return documents

    async def create(self, collection: str, record: dict[str, Any]) -> str:
        sheet, columns = self._sheet(collection)
        doc_id = uuid4().hex
        row = [doc_id] + [_to_cell(record.get(name)) for name in columns[1:]]
        try:
            sheet.append_row(row, value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to create document in {collection}: {e}")
        return doc_id

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: dict[str, Any],
    ) -> None:
        sheet, columns = self._sheet(collection)
        unknown = [name for name in changes if name not in columns[1:]]
        if unknown:
            raise StorageError(f"Unknown fields for {collection}: {', '.join(unknown)}")

        try:
            all_rows = sheet.get_all_values()
            row_idx = self._find_row(all_rows, doc_id)
            if row_idx is None:
                raise NotFoundError(f"Document not found: {collection}/{doc_id}")

            header = all_rows[0]
            for name, value in changes.items():
                col_idx = header.index(name) + 1
                sheet.update_cell(row_idx, col_idx, _to_cell(value))
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {collection}/{doc_id}: {e}")

    async def delete(self, collection: str, doc_id: str) -> bool:
        sheet, _ = self._sheet(collection)
        try:
            all_rows = sheet.get_all_values()
            row_idx = self._find_row(all_rows, doc_id)
            if row_idx is None:
                return False
            sheet.delete_rows(row_idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete {collection}/{doc_id}: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=safe_get(0),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            owner=safe_get(6) or None,
            correlation_id=safe_get(7) or None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception:
                    continue  # Skip malformed rows

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
