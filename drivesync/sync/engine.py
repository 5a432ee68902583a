"""Core sync engine for reconciling a local tree with a Drive folder."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..api import DriveClient
from ..models import split_files_and_folders
from ..utils import calculate_md5
from .comparator import FileComparator, SyncAction, SyncDecision
from .operations import SyncOperations
from .scanner import DirectoryScanner, LocalEntry

logger = logging.getLogger(__name__)

# Stats counter incremented for each action
_ACTION_STATS = {
    SyncAction.SKIP: "skips",
    SyncAction.UPLOAD_NEW: "uploads",
    SyncAction.UPLOAD_NEWER: "updates",
    SyncAction.DOWNLOAD_NEW: "downloads",
    SyncAction.DOWNLOAD_NEWER: "downloads",
    SyncAction.CREATE_FOLDER_REMOTE: "folders_created_remote",
    SyncAction.CREATE_FOLDER_LOCAL: "folders_created_local",
}


@dataclass(frozen=True)
class DirectoryLevel:
    """A local directory paired with the Drive folder that mirrors it."""

    local_path: Path
    """Absolute path of the local directory"""

    remote_id: str
    """Drive ID of the paired folder"""

    relative_path: str = ""
    """Path relative to the sync root, for log messages"""

    def child(self, name: str, remote_id: str) -> "DirectoryLevel":
        """Pair the sub-directory ``name`` with a sub-folder."""
        relative = f"{self.relative_path}/{name}" if self.relative_path else name
        return DirectoryLevel(self.local_path / name, remote_id, relative)

    def display_path(self, name: str) -> str:
        return f"{self.relative_path}/{name}" if self.relative_path else name


def create_empty_stats() -> dict:
    """Create an empty statistics dictionary.

    Returns:
        Dictionary with zero counts for all stat categories
    """
    return {
        "folders_visited": 0,
        "folders_created_remote": 0,
        "folders_created_local": 0,
        "uploads": 0,
        "updates": 0,
        "downloads": 0,
        "skips": 0,
    }


class SyncEngine:
    """Mirrors a local directory tree and a Drive folder tree.

    Each directory level is reconciled in four steps: folders missing on one
    side are created on the other, files are compared and transferred, the
    remote folder is listed again to pick up new sub-folders, and finally
    every sub-folder pair is queued. The tree is walked depth-first with an
    explicit stack, completing one subtree before its next sibling.

    Errors are not caught here. The first failure anywhere ends the pass.
    """

    def __init__(
        self,
        client: DriveClient,
        scanner: Optional[DirectoryScanner] = None,
        log: Optional[logging.Logger] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Drive API client
            scanner: Local directory scanner
            log: Logger receiving one INFO record per decision
        """
        self.client = client
        self.scanner = scanner or DirectoryScanner()
        self.log = log or logger
        self.operations = SyncOperations(client)
        self.comparator = FileComparator(self._fingerprint)

    @staticmethod
    def _fingerprint(local_entry: LocalEntry) -> str:
        return calculate_md5(local_entry.path)

    def sync(
        self,
        local_root: Union[str, Path],
        remote_root_id: str,
        dry_run: bool = False,
        stats: Optional[dict] = None,
    ) -> dict:
        """Run one reconciliation pass over the whole tree.

        Args:
            local_root: Local directory to mirror
            remote_root_id: Drive ID of the paired folder
            dry_run: If True, only log what would be done. Folders that would
                be created are not descended into.
            stats: Dictionary updated in place as actions complete, so the
                counts survive a failed pass (a new one is created if None)

        Returns:
            Dictionary with sync statistics

        Raises:
            DriveAPIError: On the first remote failure
            OSError: On the first local I/O failure
        """
        if stats is None:
            stats = create_empty_stats()
        stack = [DirectoryLevel(Path(local_root), remote_root_id)]

        while stack:
            level = stack.pop()
            children = self._sync_level(level, stats, dry_run)
            # Reversed so the first child by name is processed next
            stack.extend(reversed(children))

        return stats

    def _sync_level(
        self, level: DirectoryLevel, stats: dict, dry_run: bool
    ) -> list[DirectoryLevel]:
        """Reconcile one directory level and return its sub-folder pairs."""
        stats["folders_visited"] += 1
        self.log.debug(f"Syncing {level.local_path} with folder {level.remote_id}")

        remote_files, remote_folders = split_files_and_folders(
            self.client.list_children(level.remote_id)
        )
        local_files, local_folders = self.scanner.scan(level.local_path)

        for decision in self.comparator.compare_folders(local_folders, remote_folders):
            self._execute(decision, level, stats, dry_run)

        for decision in self.comparator.compare_files(local_files, remote_files):
            self._execute(decision, level, stats, dry_run)

        if not dry_run:
            # Pick up the folders created above
            _, remote_folders = split_files_and_folders(
                self.client.list_children(level.remote_id)
            )

        children = []
        for name in sorted(remote_folders):
            if dry_run and name not in local_folders:
                continue
            children.append(level.child(name, remote_folders[name].id))
        return children

    def _execute(
        self,
        decision: SyncDecision,
        level: DirectoryLevel,
        stats: dict,
        dry_run: bool,
    ) -> None:
        """Log and carry out a single decision."""
        action = decision.action
        path = level.display_path(decision.name)
        prefix = "[dry run] " if dry_run else ""
        self.log.info(f"{prefix}{_describe(action)} {path}: {decision.reason}")

        if dry_run or action == SyncAction.SKIP:
            stats[_ACTION_STATS[action]] += 1
            return

        local_path = level.local_path / decision.name
        if action == SyncAction.CREATE_FOLDER_REMOTE:
            self.operations.create_remote_folder(decision.name, level.remote_id)
        elif action == SyncAction.CREATE_FOLDER_LOCAL:
            self.operations.create_local_folder(local_path)
        elif action == SyncAction.UPLOAD_NEW:
            self.operations.upload_new(decision.require_local(), level.remote_id)
        elif action == SyncAction.UPLOAD_NEWER:
            self.operations.upload_newer(
                decision.require_local(), decision.require_remote()
            )
        elif action in (SyncAction.DOWNLOAD_NEW, SyncAction.DOWNLOAD_NEWER):
            self.operations.download(decision.require_remote(), local_path)

        # Only counted once the operation succeeded
        stats[_ACTION_STATS[action]] += 1


def _describe(action: SyncAction) -> str:
    return {
        SyncAction.SKIP: "Skipping",
        SyncAction.UPLOAD_NEW: "Uploading new file",
        SyncAction.UPLOAD_NEWER: "Uploading newer local file",
        SyncAction.DOWNLOAD_NEW: "Downloading new file",
        SyncAction.DOWNLOAD_NEWER: "Downloading newer remote file",
        SyncAction.CREATE_FOLDER_REMOTE: "Creating remote folder",
        SyncAction.CREATE_FOLDER_LOCAL: "Creating local folder",
    }[action]
