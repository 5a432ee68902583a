"""Data models for Google Drive API responses."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .utils import parse_drive_timestamp

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

# Field projection requested for every listed file resource
FILE_FIELDS = "id, name, mimeType, modifiedTime, md5Checksum, size, capabilities/canDownload"


@dataclass
class RemoteEntry:
    """A file or folder stored in Google Drive."""

    id: str
    """Opaque, stable identifier assigned by Drive"""

    name: str
    """Name within the parent folder"""

    mime_type: str
    """MIME type; folders use ``application/vnd.google-apps.folder``"""

    modified_time: Optional[str] = None
    """Last modification time as an RFC 3339 string"""

    md5_checksum: Optional[str] = None
    """Content MD5, only present for binary content"""

    can_download: bool = False
    """Whether the binary content can be retrieved"""

    size: Optional[int] = None
    """Size in bytes, if reported"""

    @property
    def is_folder(self) -> bool:
        """Whether this entry is a folder."""
        return self.mime_type == FOLDER_MIME_TYPE

    @property
    def is_binary(self) -> bool:
        """Whether this entry holds downloadable binary content.

        Google Docs, Sheets and other exported types have no checksum and
        are never transferred.
        """
        return self.can_download and bool(self.md5_checksum)

    @property
    def modified_at(self) -> Optional[datetime]:
        """Modification time as a UTC datetime, or None if unparseable."""
        return parse_drive_timestamp(self.modified_time)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "RemoteEntry":
        """Create a RemoteEntry from a Drive ``files`` resource.

        Args:
            data: File resource dictionary returned by the API

        Returns:
            RemoteEntry instance
        """
        capabilities = data.get("capabilities") or {}
        size = data.get("size")
        try:
            parsed_size = int(size) if size is not None else None
        except (TypeError, ValueError):
            parsed_size = None

        return cls(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=data.get("mimeType", ""),
            modified_time=data.get("modifiedTime"),
            md5_checksum=data.get("md5Checksum") or None,
            can_download=bool(capabilities.get("canDownload", False)),
            size=parsed_size,
        )


def split_files_and_folders(
    items: dict[str, RemoteEntry],
) -> tuple[dict[str, RemoteEntry], dict[str, RemoteEntry]]:
    """Split a name-keyed listing into files and folders.

    There are exactly two classes: anything that is not a folder is a file.

    Args:
        items: Name-keyed remote entries of one folder

    Returns:
        Tuple of (files, folders), both keyed by name
    """
    files: dict[str, RemoteEntry] = {}
    folders: dict[str, RemoteEntry] = {}
    for name, entry in items.items():
        if entry.is_folder:
            folders[name] = entry
        else:
            files[name] = entry
    return files, folders
