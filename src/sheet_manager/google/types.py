from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

CellValue = Union[str, int, float, bool]

SERVICE_ACCOUNT = "service_account"
AUTHORIZED_USER = "authorized_user"
APPLICATION_DEFAULT = "application_default"

CREDENTIAL_KINDS = (SERVICE_ACCOUNT, AUTHORIZED_USER, APPLICATION_DEFAULT)


@dataclass(frozen=True)
class Credential:
    """Where Google credentials come from.

    `kind` selects the loader. `info` holds decoded key material for
    service accounts and authorized users; `path` points at a key file.
    """

    kind: str
    info: Optional[dict[str, Any]] = field(default=None, repr=False)
    path: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in CREDENTIAL_KINDS:
            raise ValueError(
                f"Unknown credential kind '{self.kind}'; expected one of {CREDENTIAL_KINDS}"
            )

    @classmethod
    def from_info(cls, info: dict[str, Any]) -> "Credential":
        kind = info.get("type", SERVICE_ACCOUNT)
        return cls(kind=kind, info=info)

    @classmethod
    def from_file(cls, path: str, *, kind: str = SERVICE_ACCOUNT) -> "Credential":
        return cls(kind=kind, path=path)

    @classmethod
    def application_default(cls) -> "Credential":
        return cls(kind=APPLICATION_DEFAULT)


@dataclass(frozen=True)
class SheetInfo:
    sheet_id: int
    title: str
    index: int
    row_count: int = 0
    column_count: int = 0

    @classmethod
    def from_properties(cls, props: dict[str, Any]) -> "SheetInfo":
        grid = props.get("gridProperties", {})
        return cls(
            sheet_id=int(props.get("sheetId", 0)),
            title=props.get("title", ""),
            index=int(props.get("index", 0)),
            row_count=int(grid.get("rowCount", 0)),
            column_count=int(grid.get("columnCount", 0)),
        )


@dataclass(frozen=True)
class SpreadsheetInfo:
    """Spreadsheet metadata; `raw` is the response exactly as returned."""

    spreadsheet_id: str
    title: str
    url: Optional[str]
    sheets: tuple[SheetInfo, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "SpreadsheetInfo":
        return cls(
            spreadsheet_id=data.get("spreadsheetId", ""),
            title=data.get("properties", {}).get("title", ""),
            url=data.get("spreadsheetUrl"),
            sheets=tuple(
                SheetInfo.from_properties(s.get("properties", {}))
                for s in data.get("sheets", [])
            ),
            raw=data,
        )


@dataclass(frozen=True)
class ValueRange:
    range: str
    major_dimension: str = "ROWS"
    values: list[list[Any]] = field(default_factory=list)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "ValueRange":
        return cls(
            range=data.get("range", ""),
            major_dimension=data.get("majorDimension", "ROWS"),
            values=data.get("values", []),
        )


@dataclass(frozen=True)
class GridDimensions:
    row_count: int
    column_count: int

    def grown_to(self, required: "GridDimensions") -> "GridDimensions":
        return GridDimensions(
            row_count=max(self.row_count, required.row_count),
            column_count=max(self.column_count, required.column_count),
        )


@dataclass(frozen=True)
class SheetPayload:
    """Header row plus data rows destined for one named sheet."""

    name: str
    headers: list[str]
    rows: list[list[CellValue]] = field(default_factory=list)

    @property
    def required_grid(self) -> GridDimensions:
        return GridDimensions(
            row_count=len(self.rows) + 1, column_count=len(self.headers)
        )

    def ragged_rows(self) -> list[int]:
        """Indexes of rows whose length differs from the header row."""
        width = len(self.headers)
        return [i for i, row in enumerate(self.rows) if len(row) != width]


@dataclass(frozen=True)
class PermissionGrant:
    role: str
    type: str
    principal: Optional[str] = None

    @property
    def transfers_ownership(self) -> bool:
        return self.role == "owner"

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"role": self.role, "type": self.type}
        if self.principal is None or self.type == "anyone":
            return body
        if self.type == "domain":
            body["domain"] = self.principal
        else:
            body["emailAddress"] = self.principal
        return body


@dataclass(frozen=True)
class DocumentInfo:
    id: str
    name: str
    mime_type: Optional[str] = None
    web_view_link: Optional[str] = None
