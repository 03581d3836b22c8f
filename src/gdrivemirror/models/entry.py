"""Entries of the mirrored hierarchy."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from gdrivemirror.errors import HashUnavailableError
from gdrivemirror.util.mime import DEFAULT_MIME, FOLDER_MIME

from .record import RemoteRecord


@dataclass(slots=True, eq=False)
class Entry:
    """
    A node of the mirrored hierarchy.

    Notes:
        - ``id`` is stable across renames and moves.
        - ``parent_id`` is None only for the root (and for entries whose parent
          was never observed; those are tracked as unreachable by the graph).
        - Entries never reference each other directly; EntryGraph resolves ids.
    """

    id: str
    name: str
    parent_id: Optional[str] = None
    created_time: Optional[datetime] = None
    modified_time: Optional[datetime] = None
    properties: dict[str, str] = field(default_factory=dict)

    @property
    def is_folder(self) -> bool:
        return False


@dataclass(slots=True, eq=False)
class Folder(Entry):
    child_ids: set[str] = field(default_factory=set)

    @property
    def is_folder(self) -> bool:
        return True

    @property
    def mime_type(self) -> str:
        return FOLDER_MIME


@dataclass(slots=True, eq=False)
class File(Entry):
    size: int = 0
    md5_checksum: Optional[str] = None
    mime_type: str = DEFAULT_MIME

    @property
    def has_hash(self) -> bool:
        return self.md5_checksum is not None

    @property
    def hash(self) -> str:
        """Content checksum reported by the remote."""
        if self.md5_checksum is None:
            raise HashUnavailableError(
                "File has no content checksum",
                details={"entry_id": self.id, "operation": "hash"},
            )
        return self.md5_checksum


def entry_from_record(record: RemoteRecord) -> Entry:
    """Create a detached Folder/File from a live record."""
    if record.is_folder:
        return Folder(
            id=record.id,
            name=record.name,
            parent_id=record.parent_id,
            created_time=record.created_time,
            modified_time=record.modified_time,
            properties=dict(record.properties),
        )

    return File(
        id=record.id,
        name=record.name,
        parent_id=record.parent_id,
        created_time=record.created_time,
        modified_time=record.modified_time,
        properties=dict(record.properties),
        size=record.size or 0,
        md5_checksum=record.md5_checksum,
        mime_type=record.mime_type or DEFAULT_MIME,
    )
