"""OAuth credential handling for gdrivemirror."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from gdrivemirror.errors import AuthError

from .auth_info import AuthInfo

logger = logging.getLogger(__name__)


class OAuthClient:
    """
    Load, refresh and persist OAuth credentials; build Drive clients from them.

    The credentials object is cached, so the Drive resource, the authorized
    HTTP session and ``refresh`` all share one token.
    """

    def __init__(self, auth_info: AuthInfo, *, application_name: Optional[str] = None) -> None:
        self._auth_info = auth_info
        self._application_name = application_name
        self._creds: Any = None

    @property
    def auth_info(self) -> AuthInfo:
        return self._auth_info

    def get_credentials(self, ensure_valid: bool = True):
        """
        Return OAuth credentials for the configured scopes.

        Args:
            ensure_valid: If True, refresh expired credentials when possible.

        Returns:
            google.oauth2.credentials.Credentials

        Raises:
            AuthError: on load/refresh/flow failures.
        """
        if self._creds is None:
            self._creds = self._load_or_authorize()

        if ensure_valid and not self._creds.valid:
            self.refresh(force=True)
        return self._creds

    def refresh(self, force: bool = False) -> bool:
        """
        Refresh the access token if expired (or unconditionally with ``force``).

        Returns:
            Whether a new access token was acquired.
        """
        if self._creds is None:
            self._creds = self._load_or_authorize()

        creds = self._creds
        if not force and creds.valid:
            return False
        if not creds.refresh_token:
            raise AuthError(
                "Credentials can not be refreshed (no refresh token)",
                details={"token_file": self._auth_info.token_file},
            )

        try:
            from google.auth.transport.requests import Request
        except ImportError as exc:  # pragma: no cover
            raise AuthError(
                "Google auth libraries are not available",
                details={"hint": "Install google-auth"},
                cause=exc,
            ) from exc

        try:
            creds.refresh(Request())
        except Exception as exc:
            raise AuthError(
                "Failed to refresh OAuth credentials",
                details={"token_file": self._auth_info.token_file},
                cause=exc,
            ) from exc

        logger.debug("refresh: new access token acquired")
        self._save_credentials(creds)
        return True

    def build_drive_service(self):
        """
        Build a Drive API v3 resource.

        Returns:
            googleapiclient.discovery.Resource
        """
        try:
            from googleapiclient.discovery import build
        except ImportError as exc:  # pragma: no cover
            raise AuthError(
                "google-api-python-client is not available",
                details={"hint": "Install google-api-python-client"},
                cause=exc,
            ) from exc

        creds = self.get_credentials()
        try:
            return build("drive", "v3", credentials=creds, cache_discovery=False)
        except Exception as exc:
            raise AuthError("Failed to build Drive service", cause=exc) from exc

    def authorized_session(self):
        """
        Return a requests session that signs requests with the cached credentials.

        Returns:
            google.auth.transport.requests.AuthorizedSession
        """
        try:
            from google.auth.transport.requests import AuthorizedSession
        except ImportError as exc:  # pragma: no cover
            raise AuthError(
                "google-auth[requests] is not available",
                details={"hint": "Install google-auth and requests"},
                cause=exc,
            ) from exc

        session = AuthorizedSession(self.get_credentials())
        if self._application_name:
            session.headers["User-Agent"] = self._application_name
        return session

    # ----------------------------
    # Internals
    # ----------------------------
    def _load_or_authorize(self):
        try:
            from google.oauth2.credentials import Credentials
            from google_auth_oauthlib.flow import InstalledAppFlow
        except ImportError as exc:  # pragma: no cover
            raise AuthError(
                "Google auth libraries are not available",
                details={"hint": "Install google-auth and google-auth-oauthlib"},
                cause=exc,
            ) from exc

        token_file = self._auth_info.token_file
        scopes = list(self._auth_info.scopes)

        if os.path.exists(token_file):
            try:
                return Credentials.from_authorized_user_file(token_file, scopes=scopes)
            except Exception as exc:
                raise AuthError(
                    "Failed to load token_file",
                    details={"token_file": token_file},
                    cause=exc,
                ) from exc

        # No token yet -> interactive OAuth flow.
        client_secrets = self._auth_info.client_secrets_file
        if not os.path.exists(client_secrets):
            raise AuthError(
                "Client secrets not found. Download the OAuth client JSON from the "
                "Google developer console into the config directory.",
                details={"client_secrets_file": client_secrets},
            )

        try:
            flow = InstalledAppFlow.from_client_secrets_file(client_secrets, scopes=scopes)
            creds = flow.run_local_server(port=0)
        except Exception as exc:
            raise AuthError(
                "OAuth authorization flow failed",
                details={
                    "client_secrets_file": client_secrets,
                    "token_file": token_file,
                },
                cause=exc,
            ) from exc

        logger.debug("authorize: access token persisted")
        self._save_credentials(creds)
        return creds

    def _save_credentials(self, creds) -> None:
        token_file = self._auth_info.token_file
        token_dir = os.path.dirname(token_file)
        if token_dir:
            os.makedirs(token_dir, exist_ok=True)

        try:
            with open(token_file, "w", encoding="utf-8") as f:
                f.write(creds.to_json())
        except OSError as exc:
            raise AuthError(
                "Failed to save OAuth token file",
                details={"token_file": token_file},
                cause=exc,
            ) from exc
