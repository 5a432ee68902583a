"""Shared fixtures for drivesync tests."""

import hashlib
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pytest

from drivesync.exceptions import DriveAPIError, DriveNotFoundError
from drivesync.models import FOLDER_MIME_TYPE, RemoteEntry

ROOT_ID = "root-folder"


def drive_time(dt: datetime) -> str:
    """Format a datetime the way Drive reports ``modifiedTime``."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


class FakeDriveClient:
    """In-memory stand-in for DriveClient used by the sync tests.

    Files and folders live in a flat id-keyed store. Every call is recorded
    in ``calls`` and any method can be made to fail with ``fail_on``.
    """

    def __init__(self, root_id: str = ROOT_ID):
        self.root_id = root_id
        self.entries: dict[str, RemoteEntry] = {}
        self.parents: dict[str, str] = {}
        self.contents: dict[str, bytes] = {}
        self.calls: list[tuple[str, str]] = []
        self._failures: list[tuple[str, Optional[str], Exception]] = []
        self._next_id = 0

    # Test helpers

    def fail_on(
        self, method: str, error: Exception, name: Optional[str] = None
    ) -> None:
        """Raise ``error`` when ``method`` is called (for ``name`` only, if given)."""
        self._failures.append((method, name, error))

    def add_folder(self, name: str, parent_id: Optional[str] = None) -> RemoteEntry:
        entry = RemoteEntry(
            id=self._new_id(), name=name, mime_type=FOLDER_MIME_TYPE
        )
        self._store(entry, parent_id or self.root_id)
        return entry

    def add_file(
        self,
        name: str,
        content: bytes = b"",
        parent_id: Optional[str] = None,
        modified_time: Optional[str] = None,
        mime_type: str = "text/plain",
        can_download: bool = True,
        checksum: bool = True,
    ) -> RemoteEntry:
        entry = RemoteEntry(
            id=self._new_id(),
            name=name,
            mime_type=mime_type,
            modified_time=modified_time or drive_time(datetime.now(timezone.utc)),
            md5_checksum=hashlib.md5(content).hexdigest() if checksum else None,
            can_download=can_download,
            size=len(content),
        )
        self._store(entry, parent_id or self.root_id, content)
        return entry

    def child(self, name: str, parent_id: Optional[str] = None) -> RemoteEntry:
        return self.list_children(parent_id or self.root_id, record=False)[name]

    def tree(self, folder_id: Optional[str] = None) -> dict[str, Any]:
        """Nested view of a folder: sub-folders as dicts, files as bytes."""
        result: dict[str, Any] = {}
        for name, entry in self.list_children(
            folder_id or self.root_id, record=False
        ).items():
            if entry.is_folder:
                result[name] = self.tree(entry.id)
            else:
                result[name] = self.contents[entry.id]
        return result

    def mutations(self) -> list[tuple[str, str]]:
        reads = {"list_children", "find_folder_id"}
        return [call for call in self.calls if call[0] not in reads]

    # DriveClient interface

    def list_children(
        self, folder_id: str, record: bool = True
    ) -> dict[str, RemoteEntry]:
        if record:
            self._call("list_children", folder_id)
        if folder_id != self.root_id and folder_id not in self.entries:
            raise DriveNotFoundError(f"Folder {folder_id} not found", 404)
        return {
            entry.name: entry
            for entry_id, entry in self.entries.items()
            if self.parents[entry_id] == folder_id
        }

    def find_folder_id(
        self, name: str, parent_id: Optional[str] = None
    ) -> Optional[str]:
        self._call("find_folder_id", name)
        for entry_id, entry in self.entries.items():
            if entry.is_folder and entry.name == name:
                if parent_id is None or self.parents[entry_id] == parent_id:
                    return entry_id
        return None

    def create_folder(self, name: str, parent_id: str) -> RemoteEntry:
        self._call("create_folder", name)
        return self.add_folder(name, parent_id)

    def upload_file(self, content, name: str, parent_id: str) -> RemoteEntry:
        self._call("upload_file", name)
        return self.add_file(name, content.read(), parent_id)

    def update_file(self, content, file_id: str) -> RemoteEntry:
        entry = self.entries[file_id]
        self._call("update_file", entry.name)
        data = content.read()
        entry.md5_checksum = hashlib.md5(data).hexdigest()
        entry.modified_time = drive_time(datetime.now(timezone.utc))
        entry.size = len(data)
        self.contents[file_id] = data
        return entry

    def download_file(self, file_id: str, dest) -> Path:
        entry = self.entries[file_id]
        self._call("download_file", entry.name)
        dest = Path(dest)
        dest.write_bytes(self.contents[file_id])
        return dest

    # Internals

    def _new_id(self) -> str:
        self._next_id += 1
        return f"id-{self._next_id}"

    def _store(self, entry: RemoteEntry, parent_id: str, content: bytes = b"") -> None:
        self.entries[entry.id] = entry
        self.parents[entry.id] = parent_id
        if not entry.is_folder:
            self.contents[entry.id] = content

    def _call(self, method: str, name: str) -> None:
        for failing_method, failing_name, error in self._failures:
            if failing_method == method and failing_name in (None, name):
                raise error
        self.calls.append((method, name))


def local_tree(path: Path) -> dict[str, Any]:
    """Nested view of a local directory: sub-directories as dicts, files as bytes."""
    result: dict[str, Any] = {}
    for entry in os.scandir(path):
        if entry.is_symlink():
            continue
        if entry.is_dir():
            result[entry.name] = local_tree(Path(entry.path))
        else:
            result[entry.name] = Path(entry.path).read_bytes()
    return result


def set_mtime(path: Path, dt: datetime) -> None:
    timestamp = dt.timestamp()
    os.utime(path, (timestamp, timestamp))


@pytest.fixture
def fake_drive():
    """Create an empty in-memory Drive."""
    return FakeDriveClient()


@pytest.fixture
def sync_root(tmp_path):
    """Create an empty local directory to sync."""
    root = tmp_path / "sync"
    root.mkdir()
    return root


@pytest.fixture
def api_error():
    """Create a generic Drive API error."""
    return DriveAPIError("Backend error", 500)
