"""Public auth exports for gdrivemirror."""

from __future__ import annotations

from .auth_info import DRIVE_SCOPE, AuthInfo
from .oauth_client import OAuthClient

__all__ = ["AuthInfo", "OAuthClient", "DRIVE_SCOPE"]
