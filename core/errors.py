"""Error taxonomy shared by the sheet, file and web layers."""


class SheetDeskError(Exception):
    """Base class for all SheetDesk errors."""

    status_code = 500


class ConfigurationMissing(SheetDeskError):
    """No spreadsheet connection (or other required setting) configured."""

    status_code = 500


class NotAuthenticated(SheetDeskError):
    status_code = 401


class AccessDenied(SheetDeskError):
    status_code = 403


class SheetNotFound(SheetDeskError):
    status_code = 404


class RemoteCallFailed(SheetDeskError):
    """A single update/append/delete/upload/rename call failed.

    The operation is left retryable; callers surface ``str(exc)`` as a
    transient notification.
    """

    status_code = 502

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.operation = operation
