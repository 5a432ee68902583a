"""drivesync - keep a local directory tree mirrored with Google Drive."""

from .api import DriveClient
from .exceptions import (
    DriveAPIError,
    DriveAuthenticationError,
    DriveConfigError,
    DriveInvalidResponseError,
    DriveNetworkError,
    DriveNotFoundError,
    DrivePermissionError,
    DriveRateLimitError,
    DriveSyncError,
    DriveUploadError,
)
from .models import RemoteEntry
from .utils import calculate_md5

__all__ = [
    "DriveClient",
    "DriveAPIError",
    "DriveAuthenticationError",
    "DriveConfigError",
    "DriveInvalidResponseError",
    "DriveNetworkError",
    "DriveNotFoundError",
    "DrivePermissionError",
    "DriveRateLimitError",
    "DriveSyncError",
    "DriveUploadError",
    "RemoteEntry",
    "calculate_md5",
]
