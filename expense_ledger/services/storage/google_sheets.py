"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the storage backend because:
1. The ledger IS a spreadsheet - users read their month sheets directly
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions (the ledger validates everything before its first write)
- No stable row identifiers (the ledger re-scans after every insertion)
- Every call is a network round trip (the ledger reads whole columns
  rather than cell by cell)

Values are written RAW so dates and labels stay plain strings and the
ledger reads back exactly what it wrote.
"""

import functools
import re
from typing import Optional, Sequence

import gspread
import structlog
from google.oauth2.service_account import Credentials
from gspread.exceptions import APIError
from gspread.utils import ValueInputOption, ValueRenderOption, rowcol_to_a1
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_ledger.config import get_settings
from expense_ledger.models.audit import AUDIT_COLUMNS, AuditEvent
from expense_ledger.services.storage.interface import (
    AuditStorageInterface,
    CellValue,
    ConnectionError,
    DuplicateError,
    GridStore,
    NotFoundError,
    PartitionRef,
    StorageError,
)


logger = structlog.get_logger(__name__)


def _sheets_call(func):
    """
    Retry transient API failures, then surface them as StorageError.
    """
    retrying = retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(APIError),
        reraise=True,
    )(func)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return retrying(*args, **kwargs)
        except APIError as e:
            raise StorageError(f"Google Sheets {func.__name__} failed: {e}") from e

    return wrapper


def _column_letter(column: int) -> str:
    return rowcol_to_a1(1, column).rstrip("0123456789")


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and keeps the spreadsheet handle.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(APIError),
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
            except APIError:
                raise
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

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the audit worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.audit_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.audit_sheet_name,
                rows=5000,
                cols=len(AUDIT_COLUMNS),
            )
            sheet.append_row(AUDIT_COLUMNS)
        return sheet


class GoogleSheetsGridStore(GridStore):
    """
    Google Sheets implementation of the grid store.

    One worksheet per partition; the worksheet title is the partition key.
    Worksheet handles are cached by title, cell positions never are.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._ledger_settings = get_settings().ledger
        self._worksheets: dict[str, gspread.Worksheet] = {}

    def _worksheet(self, partition: PartitionRef) -> gspread.Worksheet:
        sheet = self._worksheets.get(partition)
        if sheet is None:
            try:
                sheet = self._client.get_spreadsheet().worksheet(partition)
            except gspread.WorksheetNotFound:
                raise NotFoundError(f"Partition not found: {partition}")
            self._worksheets[partition] = sheet
        return sheet

    # Partitions

    @_sheets_call
    def create_partition(self, key: str) -> PartitionRef:
        spreadsheet = self._client.get_spreadsheet()
        try:
            spreadsheet.worksheet(key)
        except gspread.WorksheetNotFound:
            pass
        else:
            raise DuplicateError(f"Partition already exists: {key}")

        sheet = spreadsheet.add_worksheet(
            title=key,
            rows=self._ledger_settings.partition_rows,
            cols=self._ledger_settings.partition_columns,
        )
        self._worksheets[key] = sheet
        logger.info("worksheet_created", title=key)
        return key

    @_sheets_call
    def has_partition(self, key: str) -> bool:
        try:
            self._worksheet(key)
            return True
        except NotFoundError:
            return False

    @_sheets_call
    def list_partitions(self) -> list[PartitionRef]:
        return [sheet.title for sheet in self._client.get_spreadsheet().worksheets()]

    # Reads

    @_sheets_call
    def read_column(
        self,
        partition: PartitionRef,
        column: int,
        row_count: Optional[int] = None,
    ) -> list[CellValue]:
        sheet = self._worksheet(partition)
        values = sheet.col_values(
            column,
            value_render_option=ValueRenderOption.unformatted,
        )
        if row_count is None:
            # col_values() already stops at the column's last non-empty cell
            return values
        values = values[:row_count]
        values.extend([""] * (row_count - len(values)))
        return values

    @_sheets_call
    def read_cell(self, partition: PartitionRef, row: int, column: int) -> CellValue:
        cell = self._worksheet(partition).cell(
            row,
            column,
            value_render_option=ValueRenderOption.unformatted,
        )
        return "" if cell.value is None else cell.value

    @_sheets_call
    def last_row(self, partition: PartitionRef) -> int:
        # get_all_values() trims trailing empty rows
        return len(self._worksheet(partition).get_all_values())

    @_sheets_call
    def find_text(
        self,
        partition: PartitionRef,
        literal: str,
    ) -> Optional[tuple[int, int]]:
        pattern = re.compile(re.escape(literal), re.IGNORECASE)
        cell = self._worksheet(partition).find(pattern)
        if cell is None:
            return None
        return cell.row, cell.col

    # Writes

    @_sheets_call
    def write_rows(
        self,
        partition: PartitionRef,
        row: int,
        start_column: int,
        rows: Sequence[Sequence[CellValue]],
    ) -> None:
        if not rows:
            return
        width = max(len(values) for values in rows)
        padded = [list(values) + [""] * (width - len(values)) for values in rows]
        first = rowcol_to_a1(row, start_column)
        last = rowcol_to_a1(row + len(rows) - 1, start_column + width - 1)
        self._worksheet(partition).update(
            range_name=f"{first}:{last}",
            values=padded,
            value_input_option=ValueInputOption.raw,
        )

    @_sheets_call
    def insert_row_before(self, partition: PartitionRef, row: int) -> None:
        sheet = self._worksheet(partition)
        self._client.get_spreadsheet().batch_update({
            "requests": [{
                "insertDimension": {
                    "range": {
                        "sheetId": sheet.id,
                        "dimension": "ROWS",
                        "startIndex": row - 1,
                        "endIndex": row,
                    },
                    "inheritFromBefore": False,
                }
            }]
        })

    @_sheets_call
    def clear_columns(
        self,
        partition: PartitionRef,
        first_column: int,
        last_column: int,
    ) -> None:
        span = f"{_column_letter(first_column)}:{_column_letter(last_column)}"
        self._worksheet(partition).batch_clear([span])


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(APIError),
        reraise=True,
    )
    def _append(self, row: list) -> None:
        self._client.get_audit_sheet().append_row(
            row,
            value_input_option=ValueInputOption.raw,
        )

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append(event.to_sheets_row())
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning(
                "audit_event_not_persisted",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False
