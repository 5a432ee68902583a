"""Tests for the console output formatter."""

import io

from rich.console import Console

from drivesync.output import OutputFormatter
from drivesync.sync import create_empty_stats


def make_formatter(quiet=False):
    out = io.StringIO()
    err = io.StringIO()
    formatter = OutputFormatter(
        quiet=quiet,
        console=Console(file=out, width=120),
        err_console=Console(file=err, width=120),
    )
    return formatter, out, err


class TestOutputFormatter:
    """Tests for OutputFormatter."""

    def test_quiet_suppresses_info_but_not_errors(self):
        formatter, out, err = make_formatter(quiet=True)

        formatter.info("working")
        formatter.error("broken")

        assert out.getvalue() == ""
        assert "Error: broken" in err.getvalue()

    def test_error_text_is_not_markup(self):
        formatter, _, err = make_formatter()

        formatter.error("[Errno 13] Permission denied")

        assert "[Errno 13] Permission denied" in err.getvalue()

    def test_summary_without_changes(self):
        formatter, out, _ = make_formatter()

        formatter.display_sync_summary({**create_empty_stats(), "skips": 4})

        assert "Sync complete!" in out.getvalue()
        assert "everything is in sync" in out.getvalue()

    def test_summary_lists_nonzero_counts(self):
        formatter, out, _ = make_formatter()
        stats = {**create_empty_stats(), "downloads": 3, "folders_created_local": 1}

        formatter.display_sync_summary(stats, dry_run=True)

        text = out.getvalue()
        assert "Dry run complete!" in text
        assert "Total actions: 4" in text
        assert "Downloaded" in text
        assert "Uploaded (new)" not in text

    def test_summary_of_failed_pass(self):
        """Test that a stopped pass is not reported as complete."""
        formatter, out, err = make_formatter()

        formatter.display_sync_summary(
            {**create_empty_stats(), "uploads": 1}, completed=False
        )

        assert "Sync complete!" not in out.getvalue()
        assert "stopped before completion" in err.getvalue()
        assert "Total actions: 1" in out.getvalue()
