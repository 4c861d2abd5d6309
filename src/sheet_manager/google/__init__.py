"""sheet_manager.google

The interface layer for the Google Sheets and Drive APIs.

External code should generally only need :class:`SpreadsheetClient` and the
payload types:

    from sheet_manager.google import SheetPayload, SpreadsheetClient

    client = SpreadsheetClient.from_env()
    client.add_sheet_values(spreadsheet_id, [SheetPayload("Data", ["a"], [["x"]])])
"""

from ._auth import AuthConfig, GoogleSession, create_session
from ._retry import RetryConfig
from .client import Settings, SpreadsheetClient
from .errors import AuthError, CreationError, MissingDataError, SheetManagerError
from .types import (
    Credential,
    DocumentInfo,
    GridDimensions,
    PermissionGrant,
    SheetInfo,
    SheetPayload,
    SpreadsheetInfo,
    ValueRange,
)

__all__ = [
    "AuthConfig",
    "AuthError",
    "CreationError",
    "Credential",
    "DocumentInfo",
    "GoogleSession",
    "GridDimensions",
    "MissingDataError",
    "PermissionGrant",
    "RetryConfig",
    "Settings",
    "SheetInfo",
    "SheetManagerError",
    "SheetPayload",
    "SpreadsheetClient",
    "SpreadsheetInfo",
    "ValueRange",
    "create_session",
]
