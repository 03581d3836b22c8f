"""Configuration for a gdrivemirror session."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from gdrivemirror.auth import DRIVE_SCOPE, AuthInfo
from gdrivemirror.retry import DEFAULT_INITIAL_DELAY_SEC, DEFAULT_MAX_ATTEMPTS, RetryPolicy

DEFAULT_CHUNK_SIZE: int = 64 * 1024 * 1024
DEFAULT_CONSISTENCY_ATTEMPTS: int = 60
DEFAULT_CONSISTENCY_INTERVAL_SEC: float = 0.5

CLIENT_SECRET_FILE: str = "gdrive_client_id.json"
ACCESS_TOKEN_FILE: str = "gdrive_access_token.json"
FILES_CACHE_FILE: str = "files.cache"

ENV_PREFIX: str = "GDRIVEMIRROR_"


@dataclass(slots=True, frozen=True)
class DriveConfig:
    """
    Session configuration.

    Relative file names are resolved against ``config_dir``.
    """

    config_dir: str
    application_name: Optional[str] = None
    client_secret_file: str = CLIENT_SECRET_FILE
    token_file: str = ACCESS_TOKEN_FILE
    snapshot_file: str = FILES_CACHE_FILE
    scopes: tuple[str, ...] = field(default=(DRIVE_SCOPE,))

    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_delay_sec: float = DEFAULT_INITIAL_DELAY_SEC
    consistency_attempts: int = DEFAULT_CONSISTENCY_ATTEMPTS
    consistency_interval_sec: float = DEFAULT_CONSISTENCY_INTERVAL_SEC

    def __post_init__(self) -> None:
        if not isinstance(self.config_dir, str) or not self.config_dir.strip():
            raise ValueError("DriveConfig.config_dir must be a non-empty string")
        if self.chunk_size <= 0:
            raise ValueError("DriveConfig.chunk_size must be positive")
        if self.consistency_attempts < 1:
            raise ValueError("DriveConfig.consistency_attempts must be >= 1")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> DriveConfig:
        """
        Build a config from ``GDRIVEMIRROR_*`` variables.

        Required: GDRIVEMIRROR_CONFIG_DIR. Optional: APPLICATION_NAME,
        CLIENT_SECRET_FILE, TOKEN_FILE, SNAPSHOT_FILE, SCOPES (comma-separated),
        CHUNK_SIZE, MAX_ATTEMPTS, INITIAL_DELAY_SEC, CONSISTENCY_ATTEMPTS,
        CONSISTENCY_INTERVAL_SEC.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name, "").strip()
            return value or None

        config_dir = get("CONFIG_DIR")
        if config_dir is None:
            raise ValueError(f"Missing env var: {ENV_PREFIX}CONFIG_DIR")

        kwargs: dict[str, object] = {"config_dir": config_dir}
        for name, key in (
            ("APPLICATION_NAME", "application_name"),
            ("CLIENT_SECRET_FILE", "client_secret_file"),
            ("TOKEN_FILE", "token_file"),
            ("SNAPSHOT_FILE", "snapshot_file"),
        ):
            value = get(name)
            if value is not None:
                kwargs[key] = value

        scopes = get("SCOPES")
        if scopes is not None:
            kwargs["scopes"] = tuple(s.strip() for s in scopes.split(",") if s.strip())

        for name, key, conv in (
            ("CHUNK_SIZE", "chunk_size", int),
            ("MAX_ATTEMPTS", "max_attempts", int),
            ("INITIAL_DELAY_SEC", "initial_delay_sec", float),
            ("CONSISTENCY_ATTEMPTS", "consistency_attempts", int),
            ("CONSISTENCY_INTERVAL_SEC", "consistency_interval_sec", float),
        ):
            value = get(name)
            if value is not None:
                kwargs[key] = conv(value)

        return cls(**kwargs)  # type: ignore[arg-type]

    def resolve(self, file_name: str) -> str:
        return os.path.join(self.config_dir, file_name)

    @property
    def snapshot_path(self) -> str:
        return self.resolve(self.snapshot_file)

    def auth_info(self) -> AuthInfo:
        return AuthInfo(
            client_secrets_file=self.resolve(self.client_secret_file),
            token_file=self.resolve(self.token_file),
            scopes=self.scopes,
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            initial_delay_sec=self.initial_delay_sec,
        )
