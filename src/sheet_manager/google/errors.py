class SheetManagerError(RuntimeError):
    """Base error for sheet_manager.google."""


class AuthError(SheetManagerError):
    """No usable Google credentials could be derived."""


class MissingDataError(SheetManagerError):
    """An expected field was absent from a Google API response."""


class CreationError(MissingDataError):
    """Drive did not return an id for a newly created document."""
