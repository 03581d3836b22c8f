"""Bounded retry wrapper around remote calls."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, TypeVar

from gdrivemirror.errors import (
    AuthError,
    GDriveMirrorError,
    NotFoundError,
    RetriesExhaustedError,
    map_remote_exception,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_INITIAL_DELAY_SEC = 0.1


class CredentialRefresher(Protocol):
    def __call__(self, force: bool = ...) -> Any: ...


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_delay_sec: float = DEFAULT_INITIAL_DELAY_SEC

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay_sec < 0:
            raise ValueError("initial_delay_sec must be >= 0")


class RetryingInvoker:
    """
    Execute remote calls with bounded retries and exponential backoff.

    Classification (the only place it happens):
        - NotFoundError -> returns None (absence is a valid lookup result)
        - AuthError -> transient; credentials are refreshed and the call retried
        - any other error -> raised immediately
        - a None result -> retried; RetriesExhaustedError after the last attempt
    """

    def __init__(
        self,
        refresh_credentials: Optional[CredentialRefresher] = None,
        *,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._refresh = refresh_credentials
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def invoke(
        self,
        op: Callable[[], Optional[T]],
        *,
        operation: str,
        entry_id: Optional[str] = None,
    ) -> Optional[T]:
        delay = self._policy.initial_delay_sec
        max_attempts = self._policy.max_attempts
        last_error: Optional[GDriveMirrorError] = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1 and self._refresh is not None:
                self._refresh(force=True)

            try:
                result = op()
            except Exception as exc:
                mapped = map_remote_exception(exc)
                if isinstance(mapped, NotFoundError):
                    logger.debug(f"{operation}: remote reports not found ({entry_id})")
                    return None
                if not isinstance(mapped, AuthError):
                    if mapped is exc:
                        raise
                    raise mapped from exc

                last_error = mapped
                logger.debug(
                    f"{operation}: authorization failed, refreshing credentials "
                    f"and retrying (try {attempt} of {max_attempts})"
                )
            else:
                if result is not None:
                    return result
                last_error = None
                logger.debug(
                    f"{operation}: call returned no result, retrying "
                    f"(try {attempt} of {max_attempts})"
                )

            if attempt < max_attempts:
                self._sleep(delay)
                delay *= 2

        raise RetriesExhaustedError(
            f"{operation}: giving up after {max_attempts} attempts",
            details={
                "operation": operation,
                "entry_id": entry_id,
                "attempts": max_attempts,
            },
            cause=last_error,
        )
