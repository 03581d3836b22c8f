"""Durable (token, graph) snapshots with atomic publish."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from gdrivemirror.errors import SnapshotError
from gdrivemirror.graph import EntryGraph
from gdrivemirror.models import Entry, File, Folder
from gdrivemirror.util.time import now_utc, parse_rfc3339_or_none, to_rfc3339

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(slots=True)
class Snapshot:
    token: str
    graph: EntryGraph
    saved_at: Optional[datetime] = None


class SnapshotStore:
    """
    Persist the continuation token together with the entry arena.

    The document is written to ``<path>-<token>`` first and then published
    over ``<path>`` with ``os.replace``, so a crash mid-write leaves the
    previously published snapshot intact.
    """

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def exists(self) -> bool:
        return os.path.exists(self._path)

    def save(self, token: str, graph: EntryGraph) -> None:
        """Write and publish a snapshot. Raises OSError on I/O failure."""
        staging = f"{self._path}-{_UNSAFE_CHARS.sub('_', token)}"
        parent_dir = os.path.dirname(self._path)
        if parent_dir:
            os.makedirs(parent_dir, exist_ok=True)

        document = encode_graph(graph)
        document["token"] = token
        document["saved_at"] = to_rfc3339(now_utc())

        try:
            with open(staging, "w", encoding="utf-8") as f:
                json.dump(document, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(staging, self._path)
        except OSError:
            if os.path.exists(staging):
                os.remove(staging)
            raise

        logger.debug(f"Saved snapshot with {len(graph)} entries at token {token} to {self._path}")

    def load(self) -> Optional[Snapshot]:
        """
        Read the published snapshot.

        Returns:
            Snapshot if present, None otherwise.

        Raises:
            SnapshotError: if the file exists but can not be decoded.
        """
        if not os.path.exists(self._path):
            logger.debug(f"No snapshot found at {self._path}")
            return None

        try:
            with open(self._path, encoding="utf-8") as f:
                document = json.load(f)
            graph = decode_graph(document)
            token = document["token"]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise SnapshotError(
                "Failed to load snapshot",
                details={"path": self._path},
                cause=exc,
            ) from exc

        if not isinstance(token, str) or not token:
            raise SnapshotError("Snapshot has no continuation token", details={"path": self._path})

        logger.debug(f"Loaded snapshot with {len(graph)} entries at token {token}")
        return Snapshot(
            token=token,
            graph=graph,
            saved_at=parse_rfc3339_or_none(document.get("saved_at")),
        )

    def clear(self) -> bool:
        if os.path.exists(self._path):
            os.remove(self._path)
            logger.debug(f"Cleared snapshot at {self._path}")
            return True
        return False


def encode_graph(graph: EntryGraph) -> dict[str, Any]:
    """Serialize the arena (flat entry list, not an object graph)."""
    return {
        "version": SNAPSHOT_VERSION,
        "root_id": graph.root_id,
        "unreachable": sorted(graph.unreachable_ids),
        "entries": [_encode_entry(e) for e in graph],
    }


def decode_graph(document: dict[str, Any]) -> EntryGraph:
    if document.get("version") != SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version: {document.get('version')}")

    graph = EntryGraph()
    root_id = document.get("root_id")
    unreachable = set(document.get("unreachable", []))

    entries = [_decode_entry(d) for d in document["entries"]]
    for entry in entries:
        if entry.id == root_id:
            if not isinstance(entry, Folder):
                raise ValueError(f"Snapshot root {entry.id} is not a folder")
            graph.set_root(entry)
        else:
            graph.add(entry)

    for entry in entries:
        if entry.id == root_id:
            continue
        if entry.id in unreachable or entry.parent_id is None or not graph.has(entry.parent_id):
            graph.mark_unreachable(entry.id)
        else:
            graph.attach(entry.id, entry.parent_id)
    return graph


def _encode_entry(entry: Entry) -> dict[str, Any]:
    data: dict[str, Any] = {
        "kind": "folder" if isinstance(entry, Folder) else "file",
        "id": entry.id,
        "name": entry.name,
        "parent_id": entry.parent_id,
        "created_time": to_rfc3339(entry.created_time) if entry.created_time else None,
        "modified_time": to_rfc3339(entry.modified_time) if entry.modified_time else None,
        "properties": dict(entry.properties),
    }
    if isinstance(entry, File):
        data["size"] = entry.size
        data["md5_checksum"] = entry.md5_checksum
        data["mime_type"] = entry.mime_type
    return data


def _decode_entry(data: dict[str, Any]) -> Entry:
    common = {
        "id": data["id"],
        "name": data["name"],
        "parent_id": data.get("parent_id"),
        "created_time": parse_rfc3339_or_none(data.get("created_time")),
        "modified_time": parse_rfc3339_or_none(data.get("modified_time")),
        "properties": dict(data.get("properties") or {}),
    }
    if data["kind"] == "folder":
        return Folder(**common)
    return File(
        **common,
        size=int(data.get("size") or 0),
        md5_checksum=data.get("md5_checksum"),
        mime_type=data.get("mime_type") or "application/octet-stream",
    )
