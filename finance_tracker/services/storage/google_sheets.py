"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the durable backend because:
1. Non-technical users can open their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

The ledger is stored as one row per key: [key, updated_at, data_json].
The sheet is a dumb blob store; all structure lives in the persistence
facade.

TRADEOFFS:
- Every read fetches the whole sheet (fine for one user's months)
- No transactions; last write wins
"""

import json
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import GoogleSheetsSettings, get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.models.finance import utcnow
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    KeyValueStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


STORE_COLUMNS = [
    "key",
    "updated_at",
    "data_json",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication; the connection handshake is retried.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

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

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
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

    def get_store_sheet(self) -> gspread.Worksheet:
        """Get or create the key-value worksheet."""
        return self._get_or_create_sheet(
            self._settings.store_sheet_name, STORE_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsKeyValueStore(KeyValueStoreInterface):
    """
    Google Sheets implementation of the key-value store.

    One row per key; the value is JSON-serialized into the third column.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _rows(self, sheet: gspread.Worksheet) -> list[list[str]]:
        # Row 1 is the header
        return sheet.get_all_values()[1:]

    def _find_row(self, rows: list[list[str]], key: str) -> Optional[int]:
        """Sheet row number (1-based, header included) for a key."""
        for idx, row in enumerate(rows, start=2):
            if row and row[0] == key:
                return idx
        return None

    def _row_for(self, key: str, data: Any) -> list[str]:
        return [key, utcnow().isoformat(), json.dumps(data)]

    async def save(self, key: str, data: Any) -> bool:
        return await self.save_many({key: data}) == 1

    async def save_many(self, items: dict[str, Any]) -> int:
        """Update existing rows in one batch, append the new keys in another."""
        if not items:
            return 0
        try:
            sheet = self._client.get_store_sheet()
            rows = self._rows(sheet)

            updates = []
            appends = []
            for key, data in items.items():
                row = self._row_for(key, data)
                idx = self._find_row(rows, key)
                if idx is None:
                    appends.append(row)
                else:
                    updates.append({"range": f"A{idx}:C{idx}", "values": [row]})

            if updates:
                sheet.batch_update(updates, value_input_option="RAW")
            if appends:
                sheet.append_rows(appends, value_input_option="RAW")

            return len(items)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value is not JSON serializable: {e}")
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {len(items)} keys: {e}")

    async def get(self, key: str) -> Optional[Any]:
        try:
            sheet = self._client.get_store_sheet()
            for row in self._rows(sheet):
                if row and row[0] == key:
                    return json.loads(row[2]) if len(row) > 2 and row[2] else None
            return None
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get key {key}: {e}")

    async def delete(self, key: str) -> bool:
        try:
            sheet = self._client.get_store_sheet()
            idx = self._find_row(self._rows(sheet), key)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete key {key}: {e}")

    async def list_keys(self, prefix: str = "") -> list[str]:
        try:
            sheet = self._client.get_store_sheet()
            return sorted(
                row[0] for row in self._rows(sheet)
                if row and row[0] and row[0].startswith(prefix)
            )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list keys: {e}")


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
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, IndexError) as e:
                logger.warning("audit_row_unreadable", row_id=row[0], error=str(e))
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are logged, never raised."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            logger.warning(
                "audit_append_failed",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                event for event in self._read_events()
                if event.correlation_id == correlation_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
