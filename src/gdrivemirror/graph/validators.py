"""Validation helpers for graph-level mutations."""

from __future__ import annotations

from typing import Optional

from gdrivemirror.errors import InvalidArgumentError
from gdrivemirror.models import Folder

from .entry_graph import EntryGraph, PATH_SEPARATOR


def validate_exists(graph: EntryGraph, entry_id: str, what: str) -> None:
    if not graph.has(entry_id):
        raise InvalidArgumentError(
            f"{what} is not part of the mirror: {entry_id}",
            details={"entry_id": entry_id},
        )


def validate_is_folder(graph: EntryGraph, entry_id: str, what: str) -> None:
    if not isinstance(graph.get(entry_id), Folder):
        raise InvalidArgumentError(
            f"{what} must be a folder: {entry_id}",
            details={"entry_id": entry_id},
        )


def validate_not_root(graph: EntryGraph, entry_id: str, action: str) -> None:
    if entry_id == graph.root_id:
        raise InvalidArgumentError(
            f"Root is protected: cannot {action} root",
            details={"entry_id": entry_id, "operation": action},
        )


def validate_name(name: str) -> None:
    if not name or not name.strip():
        raise InvalidArgumentError("Entry name must be a non-empty string")
    if PATH_SEPARATOR in name:
        raise InvalidArgumentError(
            f"Entry name can not contain '{PATH_SEPARATOR}': {name}",
            details={"name": name},
        )


def would_create_cycle(
    graph: EntryGraph,
    entry_id: str,
    new_parent_id: Optional[str],
) -> bool:
    """
    True if placing entry_id below new_parent_id creates a cycle.

    Walks from new_parent towards the root; hitting entry_id means the new
    parent is the entry itself or one of its descendants.
    """
    visited: set[str] = set()
    cur = new_parent_id
    while cur is not None:
        if cur == entry_id:
            return True
        if cur in visited:
            return True
        visited.add(cur)

        entry = graph.find(cur)
        if entry is None:
            return False
        cur = entry.parent_id
    return False


def validate_move_no_cycle(graph: EntryGraph, entry_id: str, new_parent_id: str) -> None:
    if would_create_cycle(graph, entry_id, new_parent_id):
        raise InvalidArgumentError(
            "MOVE would create a cycle",
            details={"entry_id": entry_id, "parent_id": new_parent_id},
        )
