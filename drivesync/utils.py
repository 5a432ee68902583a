"""Utility functions for drivesync."""

import hashlib
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Union

# =============================================================================
# Constants
# =============================================================================

# Read size used when fingerprinting and streaming file content (1 MB)
DEFAULT_CHUNK_SIZE: int = 1024 * 1024

# Page size for folder listings (Drive allows up to 1000)
DEFAULT_PAGE_SIZE: int = 100

# Retries are disabled by default: a failed request aborts the sync pass
DEFAULT_MAX_RETRIES: int = 0
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Seconds to wait between passes when syncing continuously
DEFAULT_SYNC_INTERVAL: float = 30.0


# =============================================================================
# Timestamp utilities
# =============================================================================


def round_to_second(dt: datetime) -> datetime:
    """Round a datetime to the nearest whole second (half rounds up).

    Args:
        dt: Datetime to round

    Returns:
        Datetime with microseconds cleared

    Examples:
        >>> round_to_second(datetime(2024, 1, 1, 12, 0, 0, 499999))
        datetime.datetime(2024, 1, 1, 12, 0)
        >>> round_to_second(datetime(2024, 1, 1, 12, 0, 0, 500000))
        datetime.datetime(2024, 1, 1, 12, 0, 1)
    """
    if dt.microsecond >= 500_000:
        dt += timedelta(seconds=1)
    return dt.replace(microsecond=0)


def parse_drive_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as returned by the Drive API.

    Args:
        timestamp_str: Timestamp string (e.g., "2024-01-15T10:30:00.123Z")

    Returns:
        Timezone-aware UTC datetime, or None if the value is missing or
        cannot be parsed
    """
    if not timestamp_str:
        return None

    value = timestamp_str.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None

    # Drive always sends an offset; treat a naive value as UTC anyway
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def local_mtime_to_utc(mtime: float) -> datetime:
    """Convert a POSIX modification time to a UTC datetime."""
    return datetime.fromtimestamp(mtime, tz=timezone.utc)


# =============================================================================
# Fingerprint utilities
# =============================================================================


def calculate_md5(
    file_path: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE
) -> str:
    """Calculate the MD5 fingerprint of a local file.

    The file is streamed in chunks so that large files are never loaded
    into memory at once. The result matches the ``md5Checksum`` Drive
    reports for binary content.

    Args:
        file_path: Path to the file
        chunk_size: Number of bytes read per iteration

    Returns:
        Lowercase hexadecimal MD5 digest

    Raises:
        OSError: If the file cannot be opened or read
    """
    digest = hashlib.md5()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def escape_query_value(value: str) -> str:
    """Escape a string literal for use inside a Drive ``q`` expression.

    Examples:
        >>> escape_query_value("it's")
        "it\\\\'s"
    """
    return value.replace("\\", "\\\\").replace("'", "\\'")
