"""OAuth2 authentication for the Google Drive API."""

import logging
import os
from collections.abc import Generator
from pathlib import Path
from typing import Optional, Union

import httpx
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from .exceptions import DriveAuthenticationError, DriveConfigError, DriveNetworkError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]


def load_token(token_path: Path, scopes: list[str]) -> Optional[Credentials]:
    """Load a persisted token, or None if there is no usable token file."""
    if not token_path.is_file():
        return None
    try:
        return Credentials.from_authorized_user_file(str(token_path), scopes)
    except ValueError as e:
        logger.warning(f"Ignoring unreadable token file {token_path}: {e}")
        return None


def save_token(token_path: Path, credentials: Credentials) -> None:
    """Persist credentials as JSON, readable by the owner only."""
    logger.info(f"Saving token to {token_path}")
    token_path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(credentials.to_json())


def run_authorization_flow(
    credentials_path: Path, scopes: list[str]
) -> Credentials:
    """Run the installed-app authorization-code flow in the browser."""
    if not credentials_path.is_file():
        raise DriveConfigError(f"Credentials file not found: {credentials_path}")
    try:
        flow = InstalledAppFlow.from_client_secrets_file(
            str(credentials_path), scopes=scopes
        )
    except ValueError as e:
        raise DriveConfigError(
            f"Invalid client secrets file {credentials_path}: {e}"
        ) from e
    return flow.run_local_server(port=0)


def load_credentials(
    credentials_path: Union[str, Path],
    token_path: Union[str, Path],
    scopes: Optional[list[str]] = None,
    interactive: bool = True,
) -> Credentials:
    """Return valid Drive credentials, authorizing the user if needed.

    A persisted token is reused and refreshed when expired. Without a usable
    token the authorization-code flow is started, unless ``interactive`` is
    False.

    Args:
        credentials_path: OAuth client secrets file
        token_path: Where the token is read from and saved to
        scopes: OAuth scopes (defaults to full Drive access)
        interactive: Whether the browser flow may be started

    Returns:
        Valid credentials

    Raises:
        DriveAuthenticationError: If no valid credentials can be obtained
        DriveConfigError: If the client secrets file is missing or invalid
    """
    scopes = scopes or SCOPES
    token_path = Path(token_path)
    creds = load_token(token_path, scopes)

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
            save_token(token_path, creds)
            return creds
        except RefreshError as e:
            logger.warning(f"Token refresh failed, re-authorizing: {e}")
        except TransportError as e:
            raise DriveNetworkError(f"Network error during token refresh: {e}") from e

    if not interactive:
        raise DriveAuthenticationError(
            "No valid token found. Run 'drivesync init' to authorize."
        )

    creds = run_authorization_flow(Path(credentials_path), scopes)
    save_token(token_path, creds)
    return creds


class GoogleCredentialsAuth(httpx.Auth):
    """httpx authentication that sends a Google OAuth bearer token.

    Expired credentials are refreshed before the request is sent.
    """

    def __init__(self, credentials: Credentials):
        self.credentials = credentials

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        if not self.credentials.valid:
            try:
                self.credentials.refresh(Request())
            except RefreshError as e:
                raise DriveAuthenticationError(
                    f"Could not refresh access token: {e}"
                ) from e
            except TransportError as e:
                raise DriveNetworkError(
                    f"Network error during token refresh: {e}"
                ) from e
        request.headers["Authorization"] = f"Bearer {self.credentials.token}"
        yield request
