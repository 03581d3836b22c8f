"""Public graph exports for gdrivemirror."""

from __future__ import annotations

from .entry_graph import PATH_SEPARATOR, EntryGraph
from .validators import (
    validate_exists,
    validate_is_folder,
    validate_move_no_cycle,
    validate_name,
    validate_not_root,
    would_create_cycle,
)

__all__ = [
    "EntryGraph",
    "PATH_SEPARATOR",
    "validate_exists",
    "validate_is_folder",
    "validate_move_no_cycle",
    "validate_name",
    "validate_not_root",
    "would_create_cycle",
]
