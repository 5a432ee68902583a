"""File comparison logic for sync operations."""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..models import RemoteEntry
from ..utils import local_mtime_to_utc, round_to_second
from .scanner import LocalEntry


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    SKIP = "skip"
    """Leave both sides alone"""

    UPLOAD_NEW = "upload_new"
    """Upload a local file that has no remote counterpart"""

    DOWNLOAD_NEW = "download_new"
    """Download a remote file that has no local counterpart"""

    UPLOAD_NEWER = "upload_newer"
    """Replace remote content with the newer local content"""

    DOWNLOAD_NEWER = "download_newer"
    """Replace local content with the newer remote content"""

    CREATE_FOLDER_REMOTE = "create_folder_remote"
    """Create a remote folder for a local-only directory"""

    CREATE_FOLDER_LOCAL = "create_folder_local"
    """Create a local directory for a remote-only folder"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync one item."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    name: str
    """Name of the item within its directory"""

    local_entry: Optional[LocalEntry] = None
    """Local entry (if exists)"""

    remote_entry: Optional[RemoteEntry] = None
    """Remote entry (if exists)"""

    def require_local(self) -> LocalEntry:
        """Return the local entry, which the action needs to exist."""
        if self.local_entry is None:
            raise ValueError(
                f"{self.action.value} decision for {self.name} has no local entry"
            )
        return self.local_entry

    def require_remote(self) -> RemoteEntry:
        """Return the remote entry, which the action needs to exist."""
        if self.remote_entry is None:
            raise ValueError(
                f"{self.action.value} decision for {self.name} has no remote entry"
            )
        return self.remote_entry


class FileComparator:
    """Decides what to do with each file and folder of one directory level.

    When contents differ, the newer side wins. Ties, and remote timestamps
    that cannot be parsed, resolve in favour of the local copy.
    """

    def __init__(self, fingerprint: Callable[[LocalEntry], str]):
        """Initialize file comparator.

        Args:
            fingerprint: Function computing the content hash of a local file.
                Only called when both sides hold comparable binary content.
        """
        self.fingerprint = fingerprint

    def compare_local_only(self, local: LocalEntry) -> SyncDecision:
        """Handle a file that only exists locally."""
        return SyncDecision(
            action=SyncAction.UPLOAD_NEW,
            reason="New local file",
            name=local.name,
            local_entry=local,
        )

    def compare_remote_only(self, remote: RemoteEntry) -> SyncDecision:
        """Handle a file that only exists remotely."""
        if not remote.is_binary:
            return SyncDecision(
                action=SyncAction.SKIP,
                reason=f"Remote file has no binary content ({remote.mime_type})",
                name=remote.name,
                remote_entry=remote,
            )
        return SyncDecision(
            action=SyncAction.DOWNLOAD_NEW,
            reason="New remote file",
            name=remote.name,
            remote_entry=remote,
        )

    def compare_existing(self, local: LocalEntry, remote: RemoteEntry) -> SyncDecision:
        """Compare a file that exists on both sides."""
        if not remote.can_download:
            return self._skip(local, remote, "Remote file cannot be downloaded")
        if not remote.md5_checksum:
            return self._skip(
                local, remote, f"Remote file has no checksum ({remote.mime_type})"
            )

        if self.fingerprint(local) == remote.md5_checksum:
            return self._skip(local, remote, "Files are identical")

        if self.remote_is_newer(local, remote):
            return SyncDecision(
                action=SyncAction.DOWNLOAD_NEWER,
                reason="Remote file is newer",
                name=local.name,
                local_entry=local,
                remote_entry=remote,
            )
        return SyncDecision(
            action=SyncAction.UPLOAD_NEWER,
            reason="Local file is newer or the times are indistinguishable",
            name=local.name,
            local_entry=local,
            remote_entry=remote,
        )

    @staticmethod
    def remote_is_newer(local: LocalEntry, remote: RemoteEntry) -> bool:
        """Whether the remote copy is strictly newer, at one-second resolution.

        Drive timestamps carry milliseconds and local filesystems vary, so
        both sides are rounded to whole seconds before comparing. An
        unparseable remote timestamp never counts as newer.
        """
        remote_time = remote.modified_at
        if remote_time is None:
            return False
        local_time = round_to_second(local_mtime_to_utc(local.mtime))
        return local_time < round_to_second(remote_time)

    def compare_folders(
        self,
        local_folders: dict[str, LocalEntry],
        remote_folders: dict[str, RemoteEntry],
    ) -> Iterator[SyncDecision]:
        """Outer-join folders by name; only unmatched names need an action."""
        for name in sorted(local_folders):
            if name not in remote_folders:
                yield SyncDecision(
                    action=SyncAction.CREATE_FOLDER_REMOTE,
                    reason="New local folder",
                    name=name,
                    local_entry=local_folders[name],
                )
        for name in sorted(remote_folders):
            if name not in local_folders:
                yield SyncDecision(
                    action=SyncAction.CREATE_FOLDER_LOCAL,
                    reason="New remote folder",
                    name=name,
                    remote_entry=remote_folders[name],
                )

    def compare_files(
        self,
        local_files: dict[str, LocalEntry],
        remote_files: dict[str, RemoteEntry],
    ) -> Iterator[SyncDecision]:
        """Compare local and remote files of one directory level.

        Local files are handled first, then every remote file no local file
        claimed. Decisions are produced lazily, so a caller acting on each
        one before asking for the next never fingerprints a file after an
        earlier action failed.

        Args:
            local_files: Name-keyed local files
            remote_files: Name-keyed remote files

        Yields:
            SyncDecision objects
        """
        processed: set[str] = set()

        for name in sorted(local_files):
            local = local_files[name]
            remote = remote_files.get(name)
            if remote is None:
                yield self.compare_local_only(local)
                continue
            processed.add(name)
            yield self.compare_existing(local, remote)

        for name in sorted(remote_files):
            if name not in processed:
                yield self.compare_remote_only(remote_files[name])

    @staticmethod
    def _skip(local: LocalEntry, remote: RemoteEntry, reason: str) -> SyncDecision:
        return SyncDecision(
            action=SyncAction.SKIP,
            reason=reason,
            name=local.name,
            local_entry=local,
            remote_entry=remote,
        )
