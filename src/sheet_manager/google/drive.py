from typing import Any, Dict

from sheet_manager import config
from sheet_manager import logger as log

from ._retry import RetryConfig, execute_with_retry
from .types import PermissionGrant

log = log.get_logger()

FILE_FIELDS = "id, name, mimeType, webViewLink"


class DriveFacade:
    """Small, stable wrapper around the Google Drive API.

    External code should generally access this through `SpreadsheetClient.drive`.
    """

    def __init__(self, service: Any, retry: RetryConfig | None = None):
        self._service = service
        self._retry = retry or RetryConfig()

    @property
    def service(self) -> Any:
        return self._service

    def create_spreadsheet_file(self, name: str) -> Dict[str, Any]:
        """Create an empty Google Sheet in the caller's My Drive root."""
        body = {"name": name, "mimeType": config.SPREADSHEET_MIME_TYPE}
        return execute_with_retry(
            lambda: self._service.files()
            .create(body=body, fields=FILE_FIELDS, supportsAllDrives=True)
            .execute(),
            context=f"creating spreadsheet '{name}'",
            retry=self._retry,
        )

    def create_permission(self, file_id: str, grant: PermissionGrant) -> Dict[str, Any]:
        """Share a file. Ownership moves to the grantee when the role is owner."""
        return execute_with_retry(
            lambda: self._service.permissions()
            .create(
                fileId=file_id,
                body=grant.to_body(),
                transferOwnership=grant.transfers_ownership,
                sendNotificationEmail=False,
                supportsAllDrives=True,
            )
            .execute(),
            context=f"granting {grant.role} on {file_id} to {grant.principal or grant.type}",
            retry=self._retry,
        )

    def delete_file(self, file_id: str) -> None:
        """Permanently delete a file from Google Drive."""

        execute_with_retry(
            lambda: self._service.files()
            .delete(fileId=file_id, supportsAllDrives=True)
            .execute(),
            context=f"deleting file {file_id}",
            retry=self._retry,
        )
