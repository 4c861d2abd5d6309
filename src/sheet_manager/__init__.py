from sheet_manager.google import (
    AuthError,
    CreationError,
    Credential,
    DocumentInfo,
    MissingDataError,
    PermissionGrant,
    SheetPayload,
    SpreadsheetClient,
)

__all__ = [
    "AuthError",
    "CreationError",
    "Credential",
    "DocumentInfo",
    "MissingDataError",
    "PermissionGrant",
    "SheetPayload",
    "SpreadsheetClient",
]
