"""
Google Sheets Storage Implementation

Lets the shop owner keep the ledger in a Google spreadsheet they can open
themselves. Each key is one row of the store sheet:

    key | updated_at | chunk_count | chunk_1 | chunk_2 | ...

The JSON value is split into chunks because a single cell holds at most
50,000 characters.

TRADEOFFS:
- Not suitable for high-volume data (fine for one shop)
- No transactions: a write appends the new row first and only then
  removes the old one, and reads take the last row for a key
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import GoogleSheetsSettings, get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStore,
    StorageConnectionError,
    StorageError,
)


logger = structlog.get_logger(__name__)

STORE_COLUMNS = ["key", "updated_at", "chunk_count"]

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

CELL_CHUNK_SIZE = 45000


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
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
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        headers: list[str],
        rows: int,
        cols: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=cols)
            sheet.append_row(headers)
        return sheet

    def get_store_sheet(self) -> gspread.Worksheet:
        """Get or create the key-value worksheet."""
        return self._get_or_create_sheet(
            self._settings.store_sheet_name,
            STORE_COLUMNS,
            rows=100,
            cols=26,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
            cols=len(AUDIT_COLUMNS),
        )


def encode_value(key: str, value: Any) -> list[str]:
    """Build the sheet row for one key."""
    try:
        payload = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise StorageError(f"Value for {key} is not JSON-serializable: {e}")

    chunks = [
        payload[start:start + CELL_CHUNK_SIZE]
        for start in range(0, len(payload), CELL_CHUNK_SIZE)
    ] or [""]
    return [
        key,
        datetime.now(timezone.utc).isoformat(),
        str(len(chunks)),
        *chunks,
    ]


def decode_row(row: list[str]) -> Any:
    """Reassemble the JSON value from a sheet row."""
    try:
        chunk_count = int(row[2])
        payload = "".join(row[3:3 + chunk_count])
        return json.loads(payload)
    except (IndexError, ValueError) as e:
        raise StorageError(f"Malformed store row for {row[0] if row else '?'}: {e}")


class GoogleSheetsKeyValueStore(KeyValueStore):
    """Google Sheets implementation of the key-value store."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_rows(self, sheet: gspread.Worksheet, key: str) -> list[tuple[int, list[str]]]:
        """(1-based row number, row) for every row holding `key`."""
        all_rows = sheet.get_all_values()
        return [
            (idx, row)
            for idx, row in enumerate(all_rows[1:], start=2)  # Row 1 is header
            if row and row[0] == key
        ]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def get(self, key: str) -> Optional[Any]:
        try:
            sheet = self._client.get_store_sheet()
            matches = self._find_rows(sheet, key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {key}: {e}")

        if not matches:
            return None
        return decode_row(matches[-1][1])

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def set(self, key: str, value: Any) -> None:
        row = encode_value(key, value)
        try:
            sheet = self._client.get_store_sheet()
            stale = self._find_rows(sheet, key)
            sheet.append_row(row, value_input_option="RAW")
            # Delete bottom-up so earlier row numbers stay valid
            for idx, _ in reversed(stale):
                sheet.delete_rows(idx)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {key}: {e}")

    async def delete(self, key: str) -> bool:
        try:
            sheet = self._client.get_store_sheet()
            matches = self._find_rows(sheet, key)
            for idx, _ in reversed(matches):
                sheet.delete_rows(idx)
            return bool(matches)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {key}: {e}")


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
            correlation_id=safe_get(6) or None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_sheet_write_failed", error=str(e))
            return False

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
                except (ValueError, KeyError):
                    logger.warning("audit_row_skipped", event_id=row[0])

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
