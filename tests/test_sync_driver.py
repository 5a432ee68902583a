"""Tests for the sync driver."""

from unittest.mock import Mock, patch

import httpx
import pytest
from conftest import ROOT_ID
from google.auth.exceptions import TransportError

from drivesync.api import DriveClient
from drivesync.exceptions import DriveAPIError, DriveNetworkError
from drivesync.sync import SyncDriver, SyncEngine, SyncResult, resolve_remote_root


@pytest.fixture
def mock_engine():
    """Create a mock sync engine whose passes succeed."""
    engine = Mock(spec=SyncEngine)
    engine.sync.side_effect = lambda local, remote, dry_run=False, stats=None: stats
    return engine


@pytest.fixture
def mock_sleep():
    return Mock()


@pytest.fixture
def driver(mock_engine, mock_sleep):
    return SyncDriver(mock_engine, sleep=mock_sleep)


class TestSyncResult:
    """Tests for SyncResult."""

    def test_ok_without_error(self):
        assert SyncResult().ok
        assert SyncResult().stats["uploads"] == 0

    def test_not_ok_with_error(self):
        assert not SyncResult(error=DriveAPIError("boom")).ok


class TestRunOnce:
    """Tests for single passes."""

    def test_successful_pass(self, driver, mock_engine, tmp_path):
        result = driver.run_once(tmp_path, ROOT_ID)

        assert result.ok
        assert result.passes == 1
        mock_engine.sync.assert_called_once_with(
            tmp_path, ROOT_ID, dry_run=False, stats=result.stats
        )

    def test_error_is_reported_with_partial_stats(self, driver, mock_engine, tmp_path):
        """Test that the first error ends the pass and is returned, not raised."""
        error = DriveNetworkError("Connection reset")

        def failing_sync(local, remote, dry_run=False, stats=None):
            stats["uploads"] += 2
            raise error

        mock_engine.sync.side_effect = failing_sync

        result = driver.run_once(tmp_path, ROOT_ID)

        assert not result.ok
        assert result.error is error
        assert result.stats["uploads"] == 2

    def test_local_errors_are_reported(self, driver, mock_engine, tmp_path):
        mock_engine.sync.side_effect = PermissionError("denied")

        result = driver.run_once(tmp_path, ROOT_ID)

        assert isinstance(result.error, PermissionError)

    def test_unexpected_errors_propagate(self, driver, mock_engine, tmp_path):
        """Test that programming errors are not turned into a failed pass."""
        mock_engine.sync.side_effect = KeyError("bug")

        with pytest.raises(KeyError):
            driver.run_once(tmp_path, ROOT_ID)

    @patch("drivesync.auth.Request")
    def test_token_refresh_network_error_is_reported(self, mock_request, tmp_path):
        """Test that a failed token refresh ends the pass instead of escaping."""
        creds = Mock()
        creds.valid = False
        creds.refresh.side_effect = TransportError("connection reset")
        requests = []
        client = DriveClient(
            credentials=creds,
            api_url="https://drive.test/drive/v3",
            upload_url="https://drive.test/upload/drive/v3",
            transport=httpx.MockTransport(
                lambda request: requests.append(request) or httpx.Response(200)
            ),
        )

        result = SyncDriver(SyncEngine(client)).run_once(tmp_path, ROOT_ID)

        assert isinstance(result.error, DriveNetworkError)
        assert requests == []


class TestRunForever:
    """Tests for continuous mode."""

    def test_sleeps_between_passes(self, driver, mock_engine, mock_sleep, tmp_path):
        result = driver.run_forever(tmp_path, ROOT_ID, interval=5.0, max_passes=3)

        assert result.ok
        assert result.passes == 3
        assert mock_engine.sync.call_count == 3
        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(5.0)

    def test_stops_at_first_failed_pass(
        self, driver, mock_engine, mock_sleep, tmp_path
    ):
        error = DriveAPIError("Backend error", 500)
        mock_engine.sync.side_effect = [None, error, None]

        result = driver.run_forever(tmp_path, ROOT_ID, interval=1.0)

        assert result.error is error
        assert result.passes == 2
        assert mock_engine.sync.call_count == 2
        assert mock_sleep.call_count == 1


class TestRun:
    """Tests for choosing the mode."""

    def test_once(self, driver, mock_engine, mock_sleep, tmp_path):
        result = driver.run(tmp_path, ROOT_ID, once=True, interval=1.0)

        assert result.ok
        assert mock_engine.sync.call_count == 1
        mock_sleep.assert_not_called()

    def test_dry_run_implies_once(self, driver, mock_engine, tmp_path):
        driver.run(tmp_path, ROOT_ID, once=False, interval=1.0, dry_run=True)

        assert mock_engine.sync.call_count == 1
        assert mock_engine.sync.call_args.kwargs["dry_run"] is True


class TestResolveRemoteRoot:
    """Tests for finding or creating the remote root folder."""

    def test_existing_folder(self, fake_drive):
        folder = fake_drive.add_folder("Documents", parent_id="root")

        assert resolve_remote_root(fake_drive, "Documents") == folder.id
        assert fake_drive.mutations() == []

    def test_missing_folder_is_created(self, fake_drive):
        folder_id = resolve_remote_root(fake_drive, "Documents")

        assert fake_drive.entries[folder_id].name == "Documents"
        assert fake_drive.parents[folder_id] == "root"

    def test_missing_folder_without_create(self, fake_drive):
        assert resolve_remote_root(fake_drive, "Documents", create=False) is None
        assert fake_drive.mutations() == []

    def test_folder_in_other_parent_is_ignored(self, fake_drive):
        other = fake_drive.add_folder("Elsewhere", parent_id="root")
        fake_drive.add_folder("Documents", parent_id=other.id)

        folder_id = resolve_remote_root(fake_drive, "Documents")

        assert fake_drive.parents[folder_id] == "root"
