"""Result model for synchronizer passes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional


SyncMode = Literal["full", "incremental"]


@dataclass(slots=True)
class SyncReport:
    """Summary of one reconciliation pass."""

    mode: SyncMode
    previous_token: Optional[str]
    token: Optional[str]

    records: int = 0
    created: int = 0
    updated: int = 0
    moved: int = 0
    renamed: int = 0
    deleted: int = 0
    ignored: int = 0
    unreachable: list[str] = field(default_factory=list)
    persisted: bool = False

    @property
    def token_advanced(self) -> bool:
        return self.token is not None and self.token != self.previous_token
