from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from sheet_manager import config
from sheet_manager import logger as log

from ._auth import (
    DEFAULT_SCOPES,
    AuthConfig,
    GoogleSession,
    build_drive_service,
    build_sheets_service,
    create_session,
    credential_from_env,
)
from ._requests import _req_grid_size, infer_column_rules, validation_requests
from ._retry import RetryConfig
from .a1 import column_index, sheet_range
from .drive import DriveFacade
from .errors import CreationError, MissingDataError
from .sheets import SheetsFacade
from .types import (
    Credential,
    DocumentInfo,
    GridDimensions,
    PermissionGrant,
    SheetPayload,
    SpreadsheetInfo,
    ValueRange,
)

log = log.get_logger()


@dataclass(frozen=True)
class Settings:
    last_column: str = config.SHEET_LAST_COLUMN
    max_workers: int = config.SHEET_MAX_WORKERS

    def __post_init__(self) -> None:
        column_index(self.last_column)
        if self.max_workers < 1:
            object.__setattr__(self, "max_workers", 1)


@dataclass
class SpreadsheetClient:
    """Read and write Google Sheets documents and share them through Drive.

    Build one with `SpreadsheetClient.create(credential)`; the session and
    both facades are fixed for the life of the instance and safe to use from
    several threads.

    Example:
        client = SpreadsheetClient.create(json.load(open("credentials.json")))
        doc = client.create_document("Report", [PermissionGrant("writer", "user", "a@b.com")])
        client.add_sheet_values(doc.id, [SheetPayload("Data", ["a", "b"], [["x", 1]])])
    """

    sheets: SheetsFacade
    drive: DriveFacade
    settings: Settings = field(default_factory=Settings)
    session: Optional[GoogleSession] = None

    @classmethod
    def create(
        cls,
        credential: Credential | dict[str, Any] | None,
        *,
        scopes: tuple[str, ...] = DEFAULT_SCOPES,
        retry: RetryConfig | None = None,
        settings: Settings | None = None,
    ) -> "SpreadsheetClient":
        """Authenticate and build the Sheets and Drive services.

        `credential` may be a Credential, decoded key JSON, or None for
        application default credentials. Raises AuthError when no
        credentials can be derived.
        """

        session = create_session(credential, scopes)
        retry = retry or RetryConfig()
        return cls(
            sheets=SheetsFacade(build_sheets_service(session), retry=retry),
            drive=DriveFacade(build_drive_service(session), retry=retry),
            settings=settings or Settings(),
            session=session,
        )

    @classmethod
    def from_env(
        cls,
        *,
        auth: AuthConfig | None = None,
        retry: RetryConfig | None = None,
        settings: Settings | None = None,
    ) -> "SpreadsheetClient":
        """Create a client from GOOGLE_CREDENTIALS_JSON (preferred) or the key file."""

        auth = auth or AuthConfig()
        return cls.create(
            credential_from_env(auth),
            scopes=auth.scopes,
            retry=retry,
            settings=settings,
        )

    @classmethod
    def from_service_account_file(
        cls,
        credentials_file: str,
        *,
        retry: RetryConfig | None = None,
        settings: Settings | None = None,
    ) -> "SpreadsheetClient":
        return cls.create(
            Credential.from_file(credentials_file), retry=retry, settings=settings
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_spreadsheet_info(self, spreadsheet_id: str) -> Optional[SpreadsheetInfo]:
        meta = self.sheets.get_metadata(spreadsheet_id)
        if not meta:
            return None
        return SpreadsheetInfo.from_response(meta)

    def get_sheet_name_by_index(self, spreadsheet_id: str, index: int) -> Optional[str]:
        """Title of the sheet at a zero-based position, or None if out of range."""
        meta = self.sheets.get_metadata(spreadsheet_id, fields="sheets.properties")
        sheets = meta.get("sheets") or []
        if index < 0 or index >= len(sheets):
            log.debug(
                f"No sheet at index {index} in {spreadsheet_id} ({len(sheets)} sheets)"
            )
            return None
        return sheets[index].get("properties", {}).get("title")

    def get_sheet_values(self, spreadsheet_id: str, index: int) -> Optional[ValueRange]:
        """Every row of the sheet, columns A through the configured last column."""
        name = self.get_sheet_name_by_index(spreadsheet_id, index)
        if not name:
            return None
        result = self.sheets.get_values(
            spreadsheet_id,
            sheet_range(name, f"A1:{self.settings.last_column}"),
            value_render_option="UNFORMATTED_VALUE",
        )
        return ValueRange.from_response(result)

    def get_sheet_headers(self, spreadsheet_id: str, index: int) -> Optional[list[str]]:
        """Row 1 as displayed, so numeric and boolean headers come back as text."""
        name = self.get_sheet_name_by_index(spreadsheet_id, index)
        if not name:
            return None
        values = self.sheets.read_values(spreadsheet_id, sheet_range(name, "1:1"))
        return values[0] if values else []

    def get_sheet_values_by_filter(
        self, spreadsheet_id: str, index: int, column: str, filter_value: str
    ) -> Optional[list[list[Any]]]:
        """Return the first row whose cell in `column` equals `filter_value`.

        The result is a one-row matrix, [] when nothing matches, or None when
        the sheet itself cannot be resolved.
        """

        column_index(column)
        name = self.get_sheet_name_by_index(spreadsheet_id, index)
        if not name:
            return None

        col_values = self.sheets.read_values(
            spreadsheet_id, sheet_range(name, f"{column}:{column}")
        )
        match = next(
            (i for i, cell in enumerate(col_values) if cell and cell[0] == filter_value),
            None,
        )
        if match is None:
            return []

        row_number = match + 1
        last = self.settings.last_column
        return self.sheets.read_values(
            spreadsheet_id,
            sheet_range(name, f"A{row_number}:{last}{row_number}"),
            value_render_option="UNFORMATTED_VALUE",
        )

    def get_spreadsheet_url(self, spreadsheet_id: str) -> Optional[str]:
        meta = self.sheets.get_metadata(spreadsheet_id, fields="spreadsheetUrl")
        return meta.get("spreadsheetUrl")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def ensure_sheet_exists(self, spreadsheet_id: str, name: str) -> bool:
        return self.sheets.ensure_sheet_exists(spreadsheet_id, name)

    def add_sheet_values(
        self, spreadsheet_id: str, entries: Sequence[SheetPayload]
    ) -> None:
        """Write each payload to its own sheet, creating and growing sheets as needed.

        Payloads are written concurrently. Every payload runs to completion;
        the first failure is re-raised afterwards and nothing is rolled back.
        """

        self._run_all(
            [
                (
                    f"writing sheet '{entry.name}' in {spreadsheet_id}",
                    lambda entry=entry: self._write_payload(spreadsheet_id, entry),
                )
                for entry in entries
            ]
        )

    def _write_payload(self, spreadsheet_id: str, payload: SheetPayload) -> None:
        ragged = payload.ragged_rows()
        if ragged:
            log.warning(
                f"⚠️ Sheet '{payload.name}': rows {ragged} differ from the "
                f"{len(payload.headers)} headers"
            )

        self.sheets.ensure_sheet_exists(spreadsheet_id, payload.name)

        props = self.sheets.get_sheet_properties(spreadsheet_id, payload.name)
        if props is None or props.get("sheetId") is None:
            raise MissingDataError(
                f"Sheet '{payload.name}' has no sheetId in {spreadsheet_id}"
            )
        grid_props = props.get("gridProperties")
        if not grid_props:
            raise MissingDataError(
                f"Sheet '{payload.name}' has no grid properties in {spreadsheet_id}"
            )
        sheet_id = int(props["sheetId"])

        current = GridDimensions(
            row_count=int(grid_props.get("rowCount", 0)),
            column_count=int(grid_props.get("columnCount", 0)),
        )
        target = current.grown_to(payload.required_grid)
        if target != current:
            log.debug(f"Growing '{payload.name}' grid from {current} to {target}")
            self.sheets.batch_update(spreadsheet_id, [_req_grid_size(sheet_id, target)])

        rules = infer_column_rules(payload.headers, payload.rows)

        values = [list(payload.headers)] + [list(row) for row in payload.rows]
        self.sheets.append_values(
            spreadsheet_id,
            sheet_range(payload.name, "A1"),
            values,
            value_input_option="RAW",
            insert_data_option="OVERWRITE",
        )

        if rules:
            self.sheets.batch_update(
                spreadsheet_id,
                validation_requests(sheet_id, rules, len(payload.rows)),
            )
        log.info(
            f"✅ Wrote {len(payload.rows)} rows to '{payload.name}' in {spreadsheet_id}"
        )

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def create_document(
        self, title: str, permissions: Sequence[PermissionGrant] = ()
    ) -> DocumentInfo:
        """Create an empty spreadsheet and apply each permission grant to it.

        Grants are applied concurrently; a failed grant does not remove the
        document.
        """

        created = self.drive.create_spreadsheet_file(title)
        file_id = created.get("id")
        if not file_id:
            raise CreationError(f"Drive returned no id for new document '{title}'")
        log.info(f"📄 Created spreadsheet '{title}': {file_id}")

        self._run_all(
            [
                (
                    f"granting {grant.role} on {file_id}",
                    lambda grant=grant: self.drive.create_permission(file_id, grant),
                )
                for grant in permissions
            ]
        )

        return DocumentInfo(
            id=file_id,
            name=created.get("name", title),
            mime_type=created.get("mimeType"),
            web_view_link=created.get("webViewLink"),
        )

    def _run_all(self, tasks: list[tuple[str, Callable[[], Any]]]) -> None:
        if not tasks:
            return
        workers = min(self.settings.max_workers, len(tasks))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [(label, pool.submit(fn)) for label, fn in tasks]

        first_error: BaseException | None = None
        for label, future in futures:
            error = future.exception()
            if error is None:
                continue
            log.error(f"❌ Failed {label}: {error}")
            if first_error is None:
                first_error = error
        if first_error is not None:
            raise first_error
