"""OAuth file locations for gdrivemirror."""

from __future__ import annotations

from dataclasses import dataclass, field

DRIVE_SCOPE: str = "https://www.googleapis.com/auth/drive"


@dataclass(slots=True, frozen=True)
class AuthInfo:
    """
    Where the OAuth client secrets and the persisted user token live.

    Attributes:
        client_secrets_file: JSON downloaded from the Google developer console.
        token_file: authorized-user JSON, created on first authorization and
            rewritten whenever credentials are refreshed.
        scopes: OAuth scopes requested for the Drive API.
    """

    client_secrets_file: str
    token_file: str
    scopes: tuple[str, ...] = field(default=(DRIVE_SCOPE,))

    def __post_init__(self) -> None:
        for key in ("client_secrets_file", "token_file"):
            value = getattr(self, key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"AuthInfo.{key} must be a non-empty string")

        if not self.scopes or not all(isinstance(s, str) and s.strip() for s in self.scopes):
            raise ValueError("AuthInfo.scopes must be a non-empty sequence of strings")
