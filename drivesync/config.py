"""Configuration management for drivesync."""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .exceptions import DriveConfigError
from .utils import DEFAULT_SYNC_INTERVAL

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".drivesync"
CREDENTIALS_FILE = "credentials.json"
TOKEN_FILE = "token.json"
LOG_FILE = "drivesync.log"

DEFAULT_API_URL = "https://www.googleapis.com/drive/v3"
DEFAULT_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"


class Config:
    """Locations of the credentials, token and log files.

    Everything lives in one directory, ``~/.drivesync`` unless overridden by
    the ``DRIVESYNC_CONFIG_DIR`` environment variable or ``--config-dir``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self._config_dir = config_dir

    @property
    def config_dir(self) -> Path:
        """Directory holding all drivesync files."""
        if self._config_dir is not None:
            return self._config_dir
        env_dir = os.environ.get("DRIVESYNC_CONFIG_DIR")
        if env_dir:
            return Path(env_dir).expanduser()
        return DEFAULT_CONFIG_DIR

    def set_config_dir(self, config_dir: Optional[Union[str, Path]]) -> None:
        """Override the config directory (None restores the default)."""
        self._config_dir = Path(config_dir).expanduser() if config_dir else None

    @property
    def credentials_path(self) -> Path:
        """Default location of the OAuth client secrets file."""
        return self.config_dir / CREDENTIALS_FILE

    @property
    def token_path(self) -> Path:
        """Location of the persisted OAuth token."""
        return self.config_dir / TOKEN_FILE

    @property
    def log_path(self) -> Path:
        """Location of the appended log file."""
        return self.config_dir / LOG_FILE

    @property
    def api_url(self) -> str:
        return os.environ.get("DRIVESYNC_API_URL", DEFAULT_API_URL)

    @property
    def upload_url(self) -> str:
        return os.environ.get("DRIVESYNC_UPLOAD_URL", DEFAULT_UPLOAD_URL)

    def ensure_config_dir(self) -> Path:
        """Create the config directory if needed and return it."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        return self.config_dir

    def install_credentials(self, source: Union[str, Path]) -> Path:
        """Copy a client secrets file into the config directory.

        Args:
            source: Path to the downloaded OAuth client secrets JSON

        Returns:
            Path of the installed copy

        Raises:
            DriveConfigError: If the source file does not exist
        """
        source_path = Path(source).expanduser()
        if not source_path.is_file():
            raise DriveConfigError(f"Credentials file not found: {source_path}")

        self.ensure_config_dir()
        target = self.credentials_path
        if source_path.resolve() != target.resolve():
            shutil.copyfile(source_path, target)
            logger.info(f"Copied credentials to {target}")
        return target


config = Config()


@dataclass
class RunConfig:
    """Validated settings for one sync run."""

    credentials_path: Path
    """OAuth client secrets file"""

    local_root: Path
    """Absolute path of the local folder to mirror"""

    remote_folder_name: str
    """Name of the Drive folder paired with ``local_root``"""

    once: bool = False
    """Run a single pass instead of syncing continuously"""

    interval: float = DEFAULT_SYNC_INTERVAL
    """Seconds to wait between passes in continuous mode"""


def build_run_config(
    folder: Optional[Union[str, Path]],
    credentials: Optional[Union[str, Path]] = None,
    once: bool = False,
    interval: float = DEFAULT_SYNC_INTERVAL,
    remote_name: Optional[str] = None,
) -> RunConfig:
    """Validate command line settings and build a RunConfig.

    The remote folder name defaults to the basename of the local folder.

    Raises:
        DriveConfigError: If any setting is missing or invalid
    """
    if not folder:
        raise DriveConfigError("Folder to sync is a required argument")

    local_root = Path(folder).expanduser().resolve()
    if not local_root.exists():
        raise DriveConfigError(f"Folder does not exist: {local_root}")
    if not local_root.is_dir():
        raise DriveConfigError(f"Not a directory: {local_root}")

    credentials_path = (
        Path(credentials).expanduser() if credentials else config.credentials_path
    )
    if not credentials_path.is_file():
        raise DriveConfigError(
            f"Credentials file not found: {credentials_path}. "
            "Run 'drivesync init --credentials PATH' first."
        )

    if interval < 0:
        raise DriveConfigError("Interval must not be negative")

    name = remote_name or local_root.name
    if not name:
        raise DriveConfigError("Cannot derive a remote folder name from '/'")

    return RunConfig(
        credentials_path=credentials_path,
        local_root=local_root,
        remote_folder_name=name,
        once=once,
        interval=interval,
    )
