"""Flat remote records as delivered by listings, change feeds and mutations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from gdrivemirror.util.mime import is_folder
from gdrivemirror.util.time import parse_rfc3339_or_none


@dataclass(slots=True, frozen=True)
class RemoteRecord:
    """
    One remote file/folder as seen at a point in time.

    Notes:
        - Records are flat: the hierarchy is only expressed through parent_id.
        - A record with ``deleted=True`` is a tombstone; only ``id`` is meaningful.
    """

    id: str
    name: str = ""
    parent_id: Optional[str] = None
    mime_type: str = ""
    size: Optional[int] = None
    md5_checksum: Optional[str] = None
    properties: dict[str, str] = field(default_factory=dict)
    created_time: Optional[datetime] = None
    modified_time: Optional[datetime] = None
    trashed: bool = False
    deleted: bool = False

    @classmethod
    def tombstone(cls, record_id: str) -> RemoteRecord:
        return cls(id=record_id, deleted=True)

    @property
    def is_folder(self) -> bool:
        return is_folder(self.mime_type)


def record_from_drive_file(data: dict[str, Any]) -> RemoteRecord:
    """Build a RemoteRecord from a Drive v3 ``File`` resource dict."""
    file_id = data.get("id")
    name = data.get("name", "")
    mime_type = data.get("mimeType", "")
    parents = data.get("parents") or []

    size = None
    if isinstance(data.get("size"), str) and data["size"].isdigit():
        size = int(data["size"])
    elif isinstance(data.get("size"), int):
        size = data["size"]

    md5 = data.get("md5Checksum")
    properties = data.get("properties") or {}

    return RemoteRecord(
        id=file_id if isinstance(file_id, str) else "",
        name=name if isinstance(name, str) else "",
        parent_id=parents[0] if isinstance(parents, list) and parents else None,
        mime_type=mime_type if isinstance(mime_type, str) else "",
        size=size,
        md5_checksum=md5 if isinstance(md5, str) else None,
        properties={str(k): str(v) for k, v in properties.items()}
        if isinstance(properties, dict)
        else {},
        created_time=parse_rfc3339_or_none(data.get("createdTime")),
        modified_time=parse_rfc3339_or_none(data.get("modifiedTime")),
        trashed=bool(data.get("trashed", False)),
    )
