"""Sync engine for drivesync - recursive two-way tree reconciliation."""

from .comparator import FileComparator, SyncAction, SyncDecision
from .driver import SyncDriver, SyncResult, resolve_remote_root
from .engine import DirectoryLevel, SyncEngine, create_empty_stats
from .operations import SyncOperations
from .scanner import DirectoryScanner, LocalEntry

__all__ = [
    "SyncEngine",
    "SyncDriver",
    "SyncResult",
    "SyncOperations",
    "DirectoryLevel",
    "DirectoryScanner",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "LocalEntry",
    "create_empty_stats",
    "resolve_remote_root",
]
