"""Runs sync passes once or continuously, stopping at the first error."""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

from ..api import DriveClient
from ..exceptions import DriveAPIError
from .engine import SyncEngine, create_empty_stats

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of a sync pass: statistics and the error that ended it, if any."""

    stats: dict = field(default_factory=create_empty_stats)
    """Counts of the actions completed before the pass ended"""

    error: Optional[Exception] = None
    """First error raised during the pass"""

    passes: int = 1
    """Number of passes run"""

    @property
    def ok(self) -> bool:
        return self.error is None


def resolve_remote_root(
    client: DriveClient,
    folder_name: str,
    parent_id: Optional[str] = "root",
    create: bool = True,
) -> Optional[str]:
    """Find the Drive folder paired with the local root, creating it on first use.

    Args:
        client: Drive API client
        folder_name: Name of the remote root folder
        parent_id: Folder to search in (``"root"`` is My Drive, None searches
            everywhere)
        create: Whether a missing folder may be created

    Returns:
        Folder ID, or None if the folder does not exist and ``create`` is False
    """
    folder_id = client.find_folder_id(folder_name, parent_id)
    if folder_id:
        logger.debug(f"Found remote folder '{folder_name}' ({folder_id})")
        return folder_id
    if not create:
        return None

    logger.info(f"Creating remote folder '{folder_name}'")
    return client.create_folder(folder_name, parent_id or "root").id


class SyncDriver:
    """Drives sync passes of a SyncEngine.

    A pass is a plain blocking call. The first ``DriveAPIError`` or
    ``OSError`` raised anywhere in the tree ends the pass and is reported in
    the returned SyncResult; continuous mode stops there as well.
    """

    def __init__(
        self,
        engine: SyncEngine,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize sync driver.

        Args:
            engine: Engine performing each pass
            sleep: Function used to wait between passes
        """
        self.engine = engine
        self.sleep = sleep

    def run_once(
        self,
        local_root: Union[str, Path],
        remote_root_id: str,
        dry_run: bool = False,
    ) -> SyncResult:
        """Run exactly one pass.

        Returns:
            SyncResult with the statistics and the first error, if any
        """
        stats = create_empty_stats()
        start_time = time.time()
        try:
            self.engine.sync(local_root, remote_root_id, dry_run=dry_run, stats=stats)
        except (DriveAPIError, OSError) as e:
            logger.error(f"Sync pass failed: {e}")
            return SyncResult(stats=stats, error=e)

        logger.debug(f"Sync pass finished in {time.time() - start_time:.2f}s")
        return SyncResult(stats=stats)

    def run_forever(
        self,
        local_root: Union[str, Path],
        remote_root_id: str,
        interval: float,
        max_passes: Optional[int] = None,
    ) -> SyncResult:
        """Repeat passes until one fails.

        Args:
            local_root: Local directory to mirror
            remote_root_id: Drive ID of the paired folder
            interval: Seconds to wait between passes
            max_passes: Stop after this many successful passes (None runs
                until an error)

        Returns:
            SyncResult of the last pass run
        """
        passes = 0
        while True:
            result = self.run_once(local_root, remote_root_id)
            passes += 1
            result.passes = passes
            if not result.ok:
                return result
            if max_passes is not None and passes >= max_passes:
                return result
            logger.debug(f"Pass {passes} complete, next pass in {interval:g}s")
            self.sleep(interval)

    def run(
        self,
        local_root: Union[str, Path],
        remote_root_id: str,
        once: bool,
        interval: float,
        dry_run: bool = False,
    ) -> SyncResult:
        """Run a single pass if ``once`` is set, otherwise sync continuously."""
        if once or dry_run:
            return self.run_once(local_root, remote_root_id, dry_run=dry_run)
        return self.run_forever(local_root, remote_root_id, interval)
