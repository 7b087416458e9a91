"""
Error taxonomy for sync and API operations

Every error carries the HTTP status the API layer renders it with, so routers
and the app-level exception handler never have to translate messages.
"""
from typing import Any, Optional


class AdSyncError(Exception):
    """Base class for all expected adsync failures"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AdSyncError):
    """Missing or malformed request field, raised before any network call"""

    status_code = 400


class NotFoundError(AdSyncError):
    """Referenced entity (integration, campaign, invite, ...) does not exist"""

    status_code = 404


class SyncInProgressError(AdSyncError):
    """A sync for the same organization is already running"""

    status_code = 409


class PersistenceError(AdSyncError):
    """Store read/write failure for a single campaign step"""

    status_code = 500


class VendorError(AdSyncError):
    """Base class for failures reported by (or while talking to) an ad vendor"""

    def __init__(
        self,
        vendor: str,
        message: str,
        code: Optional[Any] = None,
        http_status: Optional[int] = None
    ):
        super().__init__(message)
        self.vendor = vendor
        self.code = code
        self.http_status = http_status


class VendorAuthError(VendorError):
    """
    Vendor rejected the credential (invalid/expired token, missing permission).

    Never retried. Surfaced to the user as an actionable "reconnect" message.
    """

    status_code = 401

    def __init__(
        self,
        vendor: str,
        message: str,
        code: Optional[Any] = None,
        http_status: Optional[int] = None
    ):
        super().__init__(vendor, message, code, http_status)
        self.message = (
            f"{vendor.capitalize()} rejected the stored credentials ({message}). "
            f"Please reconnect your {vendor.capitalize()} account."
        )

    def __str__(self) -> str:
        return self.message


class VendorApiError(VendorError):
    """Any other vendor failure: non-2xx, embedded error payload, timeout, network"""

    status_code = 502

    def __str__(self) -> str:
        if self.code is not None:
            return f"{self.vendor} API error {self.code}: {self.message}"
        return f"{self.vendor} API error: {self.message}"
