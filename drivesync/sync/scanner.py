"""Single-level directory scanning for sync operations."""

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


@dataclass
class LocalEntry:
    """Represents a local file or directory with metadata."""

    name: str
    """Name within the parent directory"""

    path: Path
    """Absolute path to the entry"""

    is_dir: bool
    """Whether the entry is a directory"""

    mtime: float
    """Last modification time (Unix timestamp)"""

    size: int = 0
    """File size in bytes (0 for directories)"""

    @classmethod
    def from_dir_entry(cls, entry: os.DirEntry) -> "LocalEntry":
        """Create a LocalEntry from an ``os.scandir`` result."""
        st = entry.stat(follow_symlinks=False)
        is_dir = stat.S_ISDIR(st.st_mode)
        return cls(
            name=entry.name,
            path=Path(entry.path),
            is_dir=is_dir,
            mtime=st.st_mtime,
            size=0 if is_dir else st.st_size,
        )


class DirectoryScanner:
    """Lists the immediate children of a local directory.

    Only regular files and real directories are reported. Symbolic links are
    never followed, so a link pointing at an ancestor cannot make the sync
    loop forever. Sockets, FIFOs and device nodes are skipped as well.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> files, folders = scanner.scan(Path("/sync/folder"))
        >>> sorted(folders)
        ['docs', 'photos']
    """

    def scan(
        self, directory: Union[str, Path]
    ) -> tuple[dict[str, LocalEntry], dict[str, LocalEntry]]:
        """Read a directory once and split it into files and folders.

        Args:
            directory: Directory to list

        Returns:
            Tuple of (files, folders), both keyed by name

        Raises:
            OSError: If the directory cannot be opened or read
        """
        files: dict[str, LocalEntry] = {}
        folders: dict[str, LocalEntry] = {}

        with os.scandir(directory) as it:
            for dir_entry in it:
                if dir_entry.is_symlink():
                    logger.debug(f"Skipping symbolic link: {dir_entry.path}")
                    continue
                entry = LocalEntry.from_dir_entry(dir_entry)
                if entry.is_dir:
                    folders[entry.name] = entry
                elif dir_entry.is_file(follow_symlinks=False):
                    files[entry.name] = entry
                else:
                    logger.debug(f"Skipping special file: {dir_entry.path}")

        return files, folders

    def list_files(self, directory: Union[str, Path]) -> dict[str, LocalEntry]:
        """List the plain files directly inside ``directory``."""
        files, _ = self.scan(directory)
        return files

    def list_folders(self, directory: Union[str, Path]) -> dict[str, LocalEntry]:
        """List the sub-directories directly inside ``directory``."""
        _, folders = self.scan(directory)
        return folders
