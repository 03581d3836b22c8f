"""Continuation state owned by the synchronizer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class SyncState:
    """
    Marker of the last observed remote state.

    ``continuation_token`` is None until the first full listing has completed;
    afterwards the synchronizer only replays the change feed from it.
    """

    continuation_token: Optional[str] = None
    last_synced_at: Optional[datetime] = None
