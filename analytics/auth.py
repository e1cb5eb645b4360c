"""Access token provider backed by stored Google OAuth credentials.

Sign-in itself happens outside this app; we only read an authorized-user
JSON file (client id, client secret, refresh token) and keep its access
token fresh with google-auth.
"""
import json
import os
import threading
from pathlib import Path
from typing import Optional

import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from config import API, STORAGE, get_logger
from config.exceptions import TokenError

logger = get_logger(__name__)


class TokenProvider:
    """Supplies a valid bearer token on demand."""

    def has_credentials(self) -> bool:
        raise NotImplementedError

    def fresh_token(self) -> str:
        """Return a non-expired access token, refreshing it if needed.

        Raises:
            TokenError: No credentials are stored or the refresh failed.
        """
        raise NotImplementedError

    def restore_session(self) -> None:
        """Load stored credentials without a network call.

        Raises:
            TokenError: The stored credentials cannot be read.
        """
        raise NotImplementedError

    def sign_out(self) -> None:
        raise NotImplementedError


class GoogleTokenProvider(TokenProvider):
    """Token provider for an authorized-user credentials file.

    Refreshed tokens are written back so restarts don't need a refresh
    round-trip while the access token is still valid.
    """

    def __init__(self, credentials_file: Optional[Path] = None, scopes=None):
        if credentials_file is None:
            credentials_file = Path.home() / STORAGE.DATA_DIR_NAME / STORAGE.CREDENTIALS_FILE
        self.credentials_file = Path(credentials_file)
        self.scopes = list(scopes or [API.READONLY_SCOPE])
        self._lock = threading.Lock()
        self._credentials: Optional[Credentials] = None

    def has_credentials(self) -> bool:
        return self._credentials is not None or self.credentials_file.exists()

    def _load(self) -> Credentials:
        if self._credentials is not None:
            return self._credentials
        if not self.credentials_file.exists():
            raise TokenError("Not signed in", {"path": str(self.credentials_file)})
        try:
            self._credentials = Credentials.from_authorized_user_file(
                str(self.credentials_file), scopes=self.scopes
            )
        except (OSError, ValueError) as e:
            raise TokenError(
                f"Could not read stored credentials: {e}", {"path": str(self.credentials_file)}
            ) from e
        logger.debug(f"Loaded credentials from {self.credentials_file}")
        return self._credentials

    def restore_session(self) -> None:
        with self._lock:
            self._load()

    def fresh_token(self) -> str:
        with self._lock:
            credentials = self._load()
            if credentials.valid and credentials.token:
                return credentials.token

            try:
                credentials.refresh(Request())
            except google.auth.exceptions.GoogleAuthError as e:
                raise TokenError(f"Token refresh failed: {e}", {
                    "user_was_nil": False,
                    "expired": bool(credentials.expired),
                }) from e

            self._persist(credentials)
            logger.info("Access token refreshed")
            return credentials.token

    def _persist(self, credentials: Credentials) -> None:
        try:
            data = json.loads(credentials.to_json())
            temp_file = self.credentials_file.with_suffix('.tmp')
            temp_file.unlink(missing_ok=True)
            # Holds the refresh token and client secret: owner-only
            fd = os.open(temp_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f, indent=2)
            temp_file.replace(self.credentials_file)
        except OSError as e:
            # The in-memory token is still good; only the cache write failed
            logger.warning(f"Could not save refreshed credentials: {e}")

    def sign_out(self) -> None:
        """Forget the in-memory credentials and delete the stored file."""
        with self._lock:
            self._credentials = None
            try:
                self.credentials_file.unlink()
            except FileNotFoundError:
                pass
        logger.info("Signed out, stored credentials removed")
