"""Sync operations wrapper for unified upload/download interface."""

from pathlib import Path

from ..api import DriveClient
from ..models import RemoteEntry
from .scanner import LocalEntry


class SyncOperations:
    """Performs the mutations decided by the comparator.

    Local files are opened only for the duration of a transfer and are
    always closed afterwards.
    """

    def __init__(self, client: DriveClient):
        """Initialize sync operations.

        Args:
            client: Drive API client
        """
        self.client = client

    def upload_new(self, local_entry: LocalEntry, parent_id: str) -> RemoteEntry:
        """Upload a local file as a new remote file.

        Args:
            local_entry: Local file to upload
            parent_id: Drive ID of the destination folder

        Returns:
            The created remote file
        """
        with open(local_entry.path, "rb") as f:
            return self.client.upload_file(f, local_entry.name, parent_id)

    def upload_newer(
        self, local_entry: LocalEntry, remote_entry: RemoteEntry
    ) -> RemoteEntry:
        """Replace a remote file's content with the local content.

        The remote file keeps its ID.
        """
        with open(local_entry.path, "rb") as f:
            return self.client.update_file(f, remote_entry.id)

    def download(self, remote_entry: RemoteEntry, local_path: Path) -> Path:
        """Download a remote file, overwriting any local file at ``local_path``."""
        return self.client.download_file(remote_entry.id, local_path)

    def create_remote_folder(self, name: str, parent_id: str) -> RemoteEntry:
        """Create a remote folder under ``parent_id``."""
        return self.client.create_folder(name, parent_id)

    def create_local_folder(self, path: Path) -> None:
        """Create a local directory; an existing directory is left alone."""
        path.mkdir(exist_ok=True)
