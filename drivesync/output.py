"""Console output helpers for the drivesync CLI."""

from typing import Optional

from rich.console import Console
from rich.table import Table

from .utils import format_size


class OutputFormatter:
    """Formats user-facing messages with rich.

    Informational output is suppressed in quiet mode; warnings and errors
    are always shown (errors on stderr).
    """

    def __init__(
        self,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.quiet = quiet
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def print(self, message: str = "") -> None:
        if not self.quiet:
            self.console.print(message, soft_wrap=True)

    def info(self, message: str) -> None:
        if not self.quiet:
            self.console.print(message, style="cyan", soft_wrap=True)

    def success(self, message: str) -> None:
        if not self.quiet:
            self.console.print(message, style="green", soft_wrap=True)

    def warning(self, message: str) -> None:
        self.err_console.print(message, style="yellow", soft_wrap=True, markup=False)

    def error(self, message: str) -> None:
        self.err_console.print(
            f"Error: {message}", style="bold red", soft_wrap=True, markup=False
        )

    def format_size(self, size_bytes: int) -> str:
        return format_size(size_bytes)

    def print_summary(self, title: str, rows: list[tuple[str, str]]) -> None:
        """Print a two-column key/value table."""
        if self.quiet:
            return
        table = Table(title=title, show_header=False)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        for key, value in rows:
            table.add_row(key, value)
        self.console.print(table)

    def display_sync_summary(
        self, stats: dict, dry_run: bool = False, completed: bool = True
    ) -> None:
        """Display the statistics of one sync pass.

        Args:
            stats: Statistics dictionary returned by the sync engine
            dry_run: Whether this was a dry run
            completed: False if the pass stopped at an error
        """
        if self.quiet:
            return

        if not completed:
            self.warning("Sync stopped before completion. Completed actions:")
        elif dry_run:
            self.success("Dry run complete!")
        else:
            self.success("Sync complete!")

        rows = [
            ("Folders visited", stats.get("folders_visited", 0)),
            ("Remote folders created", stats.get("folders_created_remote", 0)),
            ("Local folders created", stats.get("folders_created_local", 0)),
            ("Uploaded (new)", stats.get("uploads", 0)),
            ("Uploaded (updated)", stats.get("updates", 0)),
            ("Downloaded", stats.get("downloads", 0)),
            ("Unchanged", stats.get("skips", 0)),
        ]
        total_actions = sum(count for label, count in rows[1:-1])
        if total_actions == 0:
            if completed:
                self.info("No changes needed - everything is in sync!")
            return
        self.print_summary(
            f"Total actions: {total_actions}",
            [(label, str(count)) for label, count in rows if count],
        )
