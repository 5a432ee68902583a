"""Exceptions raised by drivesync."""

from typing import Optional


class DriveSyncError(Exception):
    """Base exception for all drivesync errors."""


class DriveConfigError(DriveSyncError):
    """Raised when the run configuration is missing or invalid."""


class DriveAPIError(DriveSyncError):
    """Raised when a Google Drive API request fails.

    Attributes:
        status_code: HTTP status code of the failed response, if any
        reason: Drive error reason (e.g. ``rateLimitExceeded``), if reported
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class DriveAuthenticationError(DriveAPIError):
    """Raised when credentials are missing, expired or rejected."""


class DrivePermissionError(DriveAPIError):
    """Raised when access to a file or folder is forbidden."""


class DriveNotFoundError(DriveAPIError):
    """Raised when a file or folder does not exist."""


class DriveRateLimitError(DriveAPIError):
    """Raised when a rate limit or storage quota is exceeded."""


class DriveNetworkError(DriveAPIError):
    """Raised on transport failures (DNS, connection reset, timeouts)."""


class DriveInvalidResponseError(DriveAPIError):
    """Raised when the API returns a body that cannot be parsed."""


class DriveUploadError(DriveAPIError):
    """Raised when file content cannot be uploaded."""
