"""API client for Google Drive."""

from __future__ import annotations

import logging
import mimetypes
import os
import stat
import tempfile
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO

import httpx

from .auth import GoogleCredentialsAuth
from .config import config
from .exceptions import (
    DriveAPIError,
    DriveAuthenticationError,
    DriveConfigError,
    DriveInvalidResponseError,
    DriveNetworkError,
    DriveNotFoundError,
    DrivePermissionError,
    DriveRateLimitError,
    DriveUploadError,
)
from .models import FILE_FIELDS, FOLDER_MIME_TYPE, RemoteEntry
from .utils import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PAGE_SIZE,
    DEFAULT_RETRY_DELAY,
    escape_query_value,
)

if TYPE_CHECKING:
    from google.oauth2.credentials import Credentials

logger = logging.getLogger(__name__)

# 403 reasons that mean "slow down" rather than "not allowed"
RATE_LIMIT_REASONS = frozenset(
    {
        "rateLimitExceeded",
        "userRateLimitExceeded",
        "dailyLimitExceeded",
        "quotaExceeded",
        "storageQuotaExceeded",
    }
)

# Drive sometimes rejects acknowledgeAbuse=true on files that were never
# flagged; the same request without the flag succeeds.
INVALID_ABUSE_ACK_REASON = "invalidAbuseAcknowledgment"


class DriveClient:
    """Client for the Google Drive v3 REST API."""

    def __init__(
        self,
        credentials: Credentials | None = None,
        access_token: str | None = None,
        api_url: str | None = None,
        upload_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 60.0,
        page_size: int = DEFAULT_PAGE_SIZE,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize Drive API client.

        Args:
            credentials: OAuth credentials, refreshed automatically
            access_token: Static bearer token (alternative to credentials)
            api_url: Optional API URL (uses config if not provided)
            upload_url: Optional upload API URL (uses config if not provided)
            max_retries: Retries for transient failures (default: 0, fail fast)
            retry_delay: Initial delay between retries in seconds
            timeout: Request timeout in seconds
            page_size: Number of entries requested per listing page
            transport: Optional httpx transport (used by tests)
        """
        if credentials is None and not access_token:
            raise DriveConfigError(
                "No Drive credentials configured. Run 'drivesync init' first."
            )

        self.credentials = credentials
        self.access_token = access_token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.upload_url = (upload_url or config.upload_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.page_size = page_size
        self.transport = transport

        self._client: httpx.Client | None = None

    def __enter__(self) -> DriveClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            auth: httpx.Auth | None = None
            headers: dict[str, str] = {}
            if self.credentials is not None:
                auth = GoogleCredentialsAuth(self.credentials)
            else:
                headers["Authorization"] = f"Bearer {self.access_token}"
            self._client = httpx.Client(
                auth=auth,
                headers=headers,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self.transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    # =========================
    # Request plumbing
    # =========================

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        if isinstance(exception, (DriveNetworkError, DriveRateLimitError)):
            return True

        if isinstance(exception, DriveAPIError) and exception.status_code:
            return 500 <= exception.status_code < 600

        return False

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        import random

        base_delay = self.retry_delay * (2**attempt)
        # +/- 25% jitter
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _parse_error_body(response: httpx.Response) -> tuple[str | None, str | None]:
        """Extract (message, reason) from a Drive error response body."""
        try:
            data = response.json()
        except ValueError:
            return None, None
        if not isinstance(data, dict):
            return None, None

        error = data.get("error")
        if isinstance(error, str):
            return data.get("error_description") or error, error
        if not isinstance(error, dict):
            return None, None

        message = error.get("message")
        reason = None
        errors = error.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            reason = errors[0].get("reason")
        return message, reason or error.get("status")

    def _error_for_response(self, response: httpx.Response) -> DriveAPIError:
        """Map an unsuccessful response to the matching exception.

        The response body must already have been read.
        """
        status_code = response.status_code
        message, reason = self._parse_error_body(response)
        detail = f": {message}" if message else ""

        if status_code == 401:
            return DriveAuthenticationError(
                f"Invalid or expired credentials{detail}", status_code, reason
            )
        if status_code == 403:
            if reason in RATE_LIMIT_REASONS:
                return DriveRateLimitError(
                    f"Rate limit or quota exceeded{detail}", status_code, reason
                )
            return DrivePermissionError(
                f"Access forbidden{detail}", status_code, reason
            )
        if status_code == 404:
            return DriveNotFoundError(f"Resource not found{detail}", status_code, reason)
        if status_code == 429:
            return DriveRateLimitError(
                f"Rate limit exceeded{detail}", status_code, reason
            )
        return DriveAPIError(
            f"API request failed with status {status_code}{detail}",
            status_code,
            reason,
        )

    def _send(
        self, method: str, url: str, retryable: bool = True, **kwargs: Any
    ) -> httpx.Response:
        """Send a request, raising a DriveAPIError on failure.

        Args:
            method: HTTP method
            url: Absolute URL
            retryable: Whether the request may be re-sent (False for
                requests whose body is a one-shot stream)
            **kwargs: Additional arguments passed to httpx

        Returns:
            The successful response

        Raises:
            DriveAPIError: If the request fails after all retries
        """
        client = self._get_client()
        attempt = 0

        while True:
            try:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                error: DriveAPIError = self._error_for_response(e.response)
                cause: Exception = e
            except httpx.RequestError as e:
                error = DriveNetworkError(f"Network error: {e}")
                cause = e

            if retryable and self._should_retry(error, attempt):
                delay = self._calculate_retry_delay(attempt)
                logger.debug(
                    f"{method} {url} failed ({error}), retrying in {delay:.1f}s"
                )
                time.sleep(delay)
                attempt += 1
                continue
            raise error from cause

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded JSON body ({} if empty)."""
        response = self._send(method, url, **kwargs)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise DriveInvalidResponseError(
                f"Invalid JSON response from {url}", response.status_code
            ) from e

    @staticmethod
    def _content_length(content: BinaryIO) -> int | None:
        """Return the number of bytes left in a file object, if knowable."""
        try:
            return os.fstat(content.fileno()).st_size - content.tell()
        except (AttributeError, OSError, ValueError):
            return None

    # =========================
    # Folder listing
    # =========================

    def list_children(self, folder_id: str) -> dict[str, RemoteEntry]:
        """List the immediate, non-trashed children of a folder.

        All result pages are fetched and merged. If two children share a
        name, the one listed last wins.

        Args:
            folder_id: Drive ID of the folder

        Returns:
            Name-keyed map of files and folders

        Raises:
            DriveAPIError: If any page cannot be fetched
        """
        params: dict[str, Any] = {
            "q": f"'{escape_query_value(folder_id)}' in parents and trashed = false",
            "fields": f"nextPageToken, files({FILE_FIELDS})",
            "pageSize": self.page_size,
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }

        children: dict[str, RemoteEntry] = {}
        pages = 0
        while True:
            result = self._request("GET", f"{self.api_url}/files", params=params)
            pages += 1
            for item in result.get("files", []):
                entry = RemoteEntry.from_api_response(item)
                children[entry.name] = entry

            page_token = result.get("nextPageToken")
            if not page_token:
                break
            params["pageToken"] = page_token

        logger.debug(
            f"Listed {len(children)} item(s) in folder {folder_id} ({pages} page(s))"
        )
        return children

    def find_folder_id(self, name: str, parent_id: str | None = None) -> str | None:
        """Find a non-trashed folder by exact name.

        Args:
            name: Folder name
            parent_id: Restrict the search to this parent (None searches
                everywhere)

        Returns:
            Folder ID, or None if no such folder exists
        """
        query = (
            f"mimeType = '{FOLDER_MIME_TYPE}' and trashed = false "
            f"and name = '{escape_query_value(name)}'"
        )
        if parent_id:
            query += f" and '{escape_query_value(parent_id)}' in parents"

        result = self._request(
            "GET",
            f"{self.api_url}/files",
            params={"q": query, "fields": "files(id, name)", "pageSize": 1},
        )
        files = result.get("files", [])
        if not files:
            return None
        folder_id: str = files[0]["id"]
        return folder_id

    # =========================
    # Mutations
    # =========================

    def create_folder(self, name: str, parent_id: str) -> RemoteEntry:
        """Create a folder under the given parent.

        Args:
            name: Folder name
            parent_id: Drive ID of the parent folder

        Returns:
            The created folder
        """
        metadata = {
            "name": name,
            "mimeType": FOLDER_MIME_TYPE,
            "parents": [parent_id],
        }
        result = self._request(
            "POST",
            f"{self.api_url}/files",
            params={"fields": FILE_FIELDS, "supportsAllDrives": "true"},
            json=metadata,
        )
        return RemoteEntry.from_api_response(result)

    def upload_file(self, content: BinaryIO, name: str, parent_id: str) -> RemoteEntry:
        """Create a new file with the given content.

        A resumable upload session is opened with the metadata, then the
        content is streamed to the session URL.

        Args:
            content: Binary file object positioned at the start of the data
            name: File name
            parent_id: Drive ID of the parent folder

        Returns:
            The created file
        """
        mime_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        session = self._send(
            "POST",
            f"{self.upload_url}/files",
            params={
                "uploadType": "resumable",
                "fields": FILE_FIELDS,
                "supportsAllDrives": "true",
            },
            headers={"X-Upload-Content-Type": mime_type},
            json={"name": name, "parents": [parent_id]},
        )
        session_url = session.headers.get("Location")
        if not session_url:
            raise DriveUploadError(
                f"Upload session for '{name}' returned no location",
                session.status_code,
            )

        headers = {"Content-Type": mime_type}
        length = self._content_length(content)
        if length is not None:
            headers["Content-Length"] = str(length)

        result = self._request(
            "PUT", session_url, retryable=False, content=content, headers=headers
        )
        return RemoteEntry.from_api_response(result)

    def update_file(self, content: BinaryIO, file_id: str) -> RemoteEntry:
        """Replace the content of an existing file, keeping its ID.

        Args:
            content: Binary file object positioned at the start of the data
            file_id: Drive ID of the file

        Returns:
            The updated file
        """
        headers = {"Content-Type": "application/octet-stream"}
        length = self._content_length(content)
        if length is not None:
            headers["Content-Length"] = str(length)

        result = self._request(
            "PATCH",
            f"{self.upload_url}/files/{file_id}",
            retryable=False,
            params={
                "uploadType": "media",
                "fields": FILE_FIELDS,
                "supportsAllDrives": "true",
            },
            content=content,
            headers=headers,
        )
        return RemoteEntry.from_api_response(result)

    # =========================
    # Download
    # =========================

    def download_file(self, file_id: str, dest: Path | str) -> Path:
        """Download a file's content, overwriting ``dest``.

        The request is first made with ``acknowledgeAbuse=true``. If Drive
        answers with a spurious ``invalidAbuseAcknowledgment`` error, the
        request is sent once more without the flag.

        Args:
            file_id: Drive ID of the file
            dest: Local destination path

        Returns:
            Path where the file was saved

        Raises:
            DriveAPIError: If the download fails
            OSError: If the destination cannot be written
        """
        dest = Path(dest)
        try:
            return self._download(file_id, dest, acknowledge_abuse=True)
        except DriveAPIError as e:
            if e.reason != INVALID_ABUSE_ACK_REASON:
                raise
            logger.debug(
                f"Drive rejected abuse acknowledgment for {file_id}, retrying without it"
            )
            return self._download(file_id, dest, acknowledge_abuse=False)

    def _download(self, file_id: str, dest: Path, acknowledge_abuse: bool) -> Path:
        """Stream a file's content to a temporary file, then move it into place."""
        params = {"alt": "media", "supportsAllDrives": "true"}
        if acknowledge_abuse:
            params["acknowledgeAbuse"] = "true"

        client = self._get_client()
        tmp_path: Path | None = None
        try:
            with client.stream(
                "GET", f"{self.api_url}/files/{file_id}", params=params
            ) as response:
                if response.is_error:
                    response.read()
                    raise self._error_for_response(response)

                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{dest.name}.", suffix=".part", dir=dest.parent
                )
                tmp_path = Path(tmp_name)
                with os.fdopen(fd, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=DEFAULT_CHUNK_SIZE):
                        f.write(chunk)

            # mkstemp creates 0600 files; keep the mode a plain write would give
            os.chmod(tmp_path, _destination_mode(dest))
            os.replace(tmp_path, dest)
            tmp_path = None
            return dest
        except httpx.RequestError as e:
            raise DriveNetworkError(f"Network error during download: {e}") from e
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)

    # =========================
    # Account
    # =========================

    def get_about(self) -> dict[str, Any]:
        """Get the authenticated user and storage quota."""
        result: dict[str, Any] = self._request(
            "GET",
            f"{self.api_url}/about",
            params={"fields": "user(displayName, emailAddress), storageQuota"},
        )
        return result


def _destination_mode(dest: Path) -> int:
    """Permission bits for a downloaded file.

    An existing file keeps its mode; a new file gets ``0o666`` minus the
    process umask.
    """
    try:
        return stat.S_IMODE(os.stat(dest).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask
