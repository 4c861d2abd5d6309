import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from googleapiclient.errors import HttpError

from sheet_manager import logger as log

from ._requests import _req_add_sheet
from ._retry import RetryConfig, execute_with_retry, http_status
from .errors import MissingDataError

log = log.get_logger()


class _KeyedLocks:
    """One lock per key, dropped once no caller holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Any, threading.Lock] = {}
        self._users: Dict[Any, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: Any) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[key] -= 1
                if not self._users[key]:
                    del self._users[key]
                    del self._locks[key]


# Shared by every facade in the process: (spreadsheet_id, sheet title) -> lock
SHEET_CREATE_LOCKS = _KeyedLocks()


def _is_duplicate_sheet_error(error: HttpError) -> bool:
    return http_status(error) == 400 and "already exists" in str(error).lower()


class SheetsFacade:
    """Small, stable wrapper around the Google Sheets API.

    External code should generally access this through `SpreadsheetClient.sheets`.
    """

    def __init__(self, service: Any, retry: RetryConfig | None = None):
        self._service = service
        self._retry = retry or RetryConfig()

    @property
    def service(self) -> Any:
        """Underlying googleapiclient Sheets service."""
        return self._service

    def get_metadata(
        self, spreadsheet_id: str, *, fields: str | None = None
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"spreadsheetId": spreadsheet_id}
        if fields:
            kwargs["fields"] = fields
        return execute_with_retry(
            lambda: self._service.spreadsheets().get(**kwargs).execute(),
            context=f"fetching spreadsheet metadata ({spreadsheet_id})",
            retry=self._retry,
        )

    def batch_update(self, spreadsheet_id: str, requests: list[dict]) -> Dict[str, Any]:
        body = {"requests": requests}
        return execute_with_retry(
            lambda: self._service.spreadsheets()
            .batchUpdate(spreadsheetId=spreadsheet_id, body=body)
            .execute(),
            context=f"batchUpdate ({spreadsheet_id})",
            retry=self._retry,
        )

    def get_values(
        self,
        spreadsheet_id: str,
        a1_range: str,
        *,
        value_render_option: str = "FORMATTED_VALUE",
    ) -> Dict[str, Any]:
        return execute_with_retry(
            lambda: self._service.spreadsheets()
            .values()
            .get(
                spreadsheetId=spreadsheet_id,
                range=a1_range,
                valueRenderOption=value_render_option,
            )
            .execute(),
            context=f"reading range '{a1_range}' ({spreadsheet_id})",
            retry=self._retry,
        )

    def read_values(
        self,
        spreadsheet_id: str,
        a1_range: str,
        *,
        value_render_option: str = "FORMATTED_VALUE",
    ) -> list[list[Any]]:
        result = self.get_values(
            spreadsheet_id, a1_range, value_render_option=value_render_option
        )
        return result.get("values", [])

    def append_values(
        self,
        spreadsheet_id: str,
        a1_range: str,
        values: list[list[Any]],
        *,
        value_input_option: str = "RAW",
        insert_data_option: str = "INSERT_ROWS",
    ) -> Dict:
        body = {"values": values}
        return execute_with_retry(
            lambda: self._service.spreadsheets()
            .values()
            .append(
                spreadsheetId=spreadsheet_id,
                range=a1_range,
                valueInputOption=value_input_option,
                insertDataOption=insert_data_option,
                body=body,
            )
            .execute(),
            context=f"appending to range '{a1_range}' ({spreadsheet_id})",
            retry=self._retry,
        )

    def sheet_titles(self, spreadsheet_id: str) -> list[str]:
        meta = self.get_metadata(spreadsheet_id, fields="sheets.properties")
        sheets = meta.get("sheets")
        if sheets is None:
            raise MissingDataError(
                f"Spreadsheet {spreadsheet_id} metadata has no sheet list"
            )
        return [s.get("properties", {}).get("title") for s in sheets]

    def get_sheet_properties(
        self, spreadsheet_id: str, sheet_name: str
    ) -> Optional[Dict[str, Any]]:
        meta = self.get_metadata(spreadsheet_id, fields="sheets.properties")
        for sheet in meta.get("sheets", []):
            props = sheet.get("properties", {})
            if props.get("title") == sheet_name:
                return props
        return None

    def ensure_sheet_exists(self, spreadsheet_id: str, sheet_name: str) -> bool:
        """Add the sheet unless a sheet with this exact title exists.

        Returns True when this call created it. Concurrent callers in this
        process are serialized per (spreadsheet, title); a duplicate reported
        by the API (another process won) counts as existing.
        """

        with SHEET_CREATE_LOCKS.hold((spreadsheet_id, sheet_name)):
            if sheet_name in self.sheet_titles(spreadsheet_id):
                return False
            try:
                self.batch_update(spreadsheet_id, [_req_add_sheet(sheet_name)])
            except HttpError as e:
                if not _is_duplicate_sheet_error(e):
                    raise
                log.warning(
                    f"⚠️ Sheet '{sheet_name}' was created concurrently in {spreadsheet_id}"
                )
                return False
            log.info(f"✅ Added sheet '{sheet_name}' to {spreadsheet_id}")
            return True
