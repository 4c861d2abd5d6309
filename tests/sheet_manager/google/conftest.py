import json
import re
import threading

import httplib2
import pytest
from googleapiclient.errors import HttpError

from sheet_manager.google.client import Settings, SpreadsheetClient
from sheet_manager.google.drive import DriveFacade
from sheet_manager.google.sheets import SheetsFacade

_RANGE_RE = re.compile(r"^'(?P<name>(?:[^']|'')+)'(?:!(?P<cells>.+))?$")
_CELLS_RE = re.compile(
    r"^(?P<sc>[A-Z]*)(?P<sr>\d*)(?::(?P<ec>[A-Z]*)(?P<er>\d*))?$"
)


def make_http_error(status: int, message: str = "") -> HttpError:
    content = json.dumps({"error": {"code": status, "message": message}}).encode()
    return HttpError(httplib2.Response({"status": str(status)}), content)


def _col(letters: str) -> int:
    n = 0
    for ch in letters:
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def _formatted(value):
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


class _Exec:
    def __init__(self, fn):
        self._fn = fn

    def execute(self):
        return self._fn()


class FakeSheetsService:
    """In-memory stand-in for the Sheets v4 resource tree.

    Keeps per-sheet grid properties, cell rows, and applied validations.
    """

    def __init__(self, spreadsheet_id="ssid", titles=("Sheet1",)):
        self.spreadsheet_id = spreadsheet_id
        self.calls = []
        self.lock = threading.Lock()
        self.sheets = []
        self.cells = {}
        self.validations = []
        self.meta_override = None
        self.properties_override = None
        self.fail_add_sheet_with = None
        self._next_id = 0
        for title in titles:
            self._add_sheet(title)

    # -- state helpers --------------------------------------------------

    def _add_sheet(self, title, row_count=1000, column_count=26):
        props = {
            "sheetId": self._next_id,
            "title": title,
            "index": len(self.sheets),
            "gridProperties": {"rowCount": row_count, "columnCount": column_count},
        }
        self._next_id += 1
        self.sheets.append({"properties": props})
        self.cells[title] = []
        return props

    def props(self, title):
        for s in self.sheets:
            if s["properties"]["title"] == title:
                return s["properties"]
        return None

    def titles(self):
        return [s["properties"]["title"] for s in self.sheets]

    def _metadata(self):
        if self.meta_override is not None:
            return self.meta_override
        meta = {
            "spreadsheetId": self.spreadsheet_id,
            "properties": {"title": "Doc"},
            "spreadsheetUrl": f"https://docs.google.com/spreadsheets/d/{self.spreadsheet_id}/edit",
            "sheets": [{"properties": dict(s["properties"])} for s in self.sheets],
        }
        if self.properties_override is not None:
            for s in meta["sheets"]:
                s["properties"] = self.properties_override(s["properties"])
        return meta

    def _resolve(self, a1_range):
        m = _RANGE_RE.match(a1_range)
        assert m, f"unexpected range {a1_range}"
        name = m.group("name").replace("''", "'")
        cells = m.group("cells") or ""
        c = _CELLS_RE.match(cells)
        assert c, f"unexpected cells {cells}"
        sc, sr, ec, er = c.group("sc"), c.group("sr"), c.group("ec"), c.group("er")
        single = ":" not in cells
        col_start = _col(sc) if sc else 0
        col_end = _col(ec) if ec else (col_start if single and sc else None)
        row_start = int(sr) - 1 if sr else 0
        row_end = int(er) - 1 if er else (row_start if single and sr else None)
        return name, row_start, row_end, col_start, col_end

    def _read(self, a1_range, render):
        name, r0, r1, c0, c1 = self._resolve(a1_range)
        rows = self.cells.get(name, [])
        r1 = len(rows) - 1 if r1 is None else min(r1, len(rows) - 1)
        out = []
        for row in rows[r0 : r1 + 1]:
            end = len(row) if c1 is None else c1 + 1
            cut = row[c0:end]
            if render == "FORMATTED_VALUE":
                cut = [_formatted(v) for v in cut]
            out.append(cut)
        while out and not out[-1]:
            out.pop()
        return {"range": a1_range, "majorDimension": "ROWS", "values": out} if out else {
            "range": a1_range,
            "majorDimension": "ROWS",
        }

    def _apply(self, body):
        replies = []
        for req in body["requests"]:
            if "addSheet" in req:
                if self.fail_add_sheet_with is not None:
                    raise self.fail_add_sheet_with
                title = req["addSheet"]["properties"]["title"]
                if title in self.titles():
                    raise make_http_error(
                        400, f'A sheet with the name "{title}" already exists.'
                    )
                replies.append({"addSheet": {"properties": self._add_sheet(title)}})
            elif "updateSheetProperties" in req:
                upd = req["updateSheetProperties"]["properties"]
                for s in self.sheets:
                    if s["properties"]["sheetId"] == upd["sheetId"]:
                        s["properties"]["gridProperties"].update(upd["gridProperties"])
                replies.append({})
            elif "setDataValidation" in req:
                self.validations.append(req["setDataValidation"])
                replies.append({})
            else:
                raise AssertionError(f"unexpected request {req}")
        return {"spreadsheetId": self.spreadsheet_id, "replies": replies}

    def _append(self, a1_range, values):
        name, *_ = self._resolve(a1_range)
        rows = self.cells[name]
        rows.extend([list(v) for v in values])
        grid = self.props(name)["gridProperties"]
        grid["rowCount"] = max(grid["rowCount"], len(rows))
        return {"updates": {"updatedRows": len(values)}}

    # -- resource tree --------------------------------------------------

    def spreadsheets(self):
        service = self

        class _Values:
            def get(self, spreadsheetId, range, valueRenderOption="FORMATTED_VALUE"):
                service.calls.append(("values.get", spreadsheetId, range, valueRenderOption))
                return _Exec(lambda: service._read(range, valueRenderOption))

            def append(
                self, spreadsheetId, range, valueInputOption, insertDataOption, body
            ):
                service.calls.append(
                    ("values.append", spreadsheetId, range, valueInputOption, insertDataOption, body)
                )

                def _do():
                    with service.lock:
                        return service._append(range, body["values"])

                return _Exec(_do)

        class _Spreadsheets:
            def get(self, spreadsheetId, fields=None):
                service.calls.append(("get", spreadsheetId, fields))

                def _do():
                    with service.lock:
                        return service._metadata()

                return _Exec(_do)

            def batchUpdate(self, spreadsheetId, body):
                service.calls.append(("batchUpdate", spreadsheetId, body))

                def _do():
                    with service.lock:
                        return service._apply(body)

                return _Exec(_do)

            def values(self):
                return _Values()

        return _Spreadsheets()


class FakeDriveService:
    def __init__(self):
        self.calls = []
        self.permissions_created = []
        self.created_response = None
        self.fail_permission_for = set()
        self.deleted = []

    def files(self):
        svc = self

        class _Files:
            def create(self, body=None, fields=None, supportsAllDrives=None):
                svc.calls.append(("files.create", body, fields, supportsAllDrives))
                if svc.created_response is not None:
                    return _Exec(lambda: svc.created_response)
                return _Exec(
                    lambda: {
                        "id": "doc-1",
                        "name": body["name"],
                        "mimeType": body["mimeType"],
                        "webViewLink": "https://docs.google.com/spreadsheets/d/doc-1/edit",
                    }
                )

            def delete(self, fileId=None, supportsAllDrives=None):
                svc.calls.append(("files.delete", fileId))
                svc.deleted.append(fileId)
                return _Exec(lambda: "")

        return _Files()

    def permissions(self):
        svc = self

        class _Permissions:
            def create(
                self,
                fileId,
                body,
                transferOwnership,
                sendNotificationEmail,
                supportsAllDrives=None,
            ):
                record = {
                    "fileId": fileId,
                    "body": body,
                    "transferOwnership": transferOwnership,
                    "sendNotificationEmail": sendNotificationEmail,
                }
                svc.calls.append(("permissions.create", record))

                def _do():
                    if body.get("emailAddress") in svc.fail_permission_for:
                        raise make_http_error(403, "The user does not have permission")
                    svc.permissions_created.append(record)
                    return {"id": f"perm-{len(svc.permissions_created)}"}

                return _Exec(_do)

        return _Permissions()


@pytest.fixture
def as_http_error():
    """Fixture: factory to create a real HttpError with a status and message."""

    return make_http_error


@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr("sheet_manager.google._retry.time.sleep", lambda _s: None)
    monkeypatch.setattr("sheet_manager.google._retry.random.random", lambda: 0.0)


@pytest.fixture
def sheets_service():
    return FakeSheetsService()


@pytest.fixture
def drive_service():
    return FakeDriveService()


@pytest.fixture
def client(sheets_service, drive_service):
    return SpreadsheetClient(
        sheets=SheetsFacade(sheets_service),
        drive=DriveFacade(drive_service),
        settings=Settings(last_column="Z", max_workers=4),
    )
