"""In-process RemoteStorageService with a change log."""

from __future__ import annotations

import hashlib
import itertools
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional

from gdrivemirror.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
)
from gdrivemirror.models import RemoteRecord
from gdrivemirror.util.mime import DEFAULT_MIME, FOLDER_MIME
from gdrivemirror.util.time import now_utc

from .base import ChangePage, IterableBody, RecordPage, UploadChannel, UploadChunkResult

ROOT_ALIAS = "root"


@dataclass(slots=True)
class _StoredFile:
    record: RemoteRecord
    content: bytes = b""
    seq: int = 0


@dataclass(slots=True)
class _Change:
    record: RemoteRecord
    visible_at_poll: int = 0


@dataclass(slots=True)
class _Upload:
    channel: UploadChannel
    buffer: bytearray = field(default_factory=bytearray)


class InMemoryDriveService:
    """
    Drive-like storage kept in memory.

    Notes:
        - ``get_entry("root")`` resolves to the root folder, as on Drive.
        - Change markers are positions in the change log.
        - ``visibility_lag`` delays new changes by that many ``list_changes``
          polls, emulating eventual consistency of the change feed.
        - ``fail_next(operation, exc)`` queues an exception for the next call of
          that operation.
    """

    def __init__(
        self,
        *,
        root_id: str = "root-folder",
        root_name: str = "My Drive",
        page_size: int = 100,
        visibility_lag: int = 0,
    ) -> None:
        self.root_id = root_id
        self.page_size = page_size
        self.visibility_lag = visibility_lag
        self.calls: list[tuple[Any, ...]] = []

        self._files: dict[str, _StoredFile] = {}
        self._changes: list[_Change] = []
        self._uploads: dict[str, _Upload] = {}
        self._failures: dict[str, list[BaseException]] = {}
        self._ids = itertools.count(1)
        self._seq = itertools.count(1)
        self._polls = 0

        now = now_utc()
        root = RemoteRecord(
            id=root_id,
            name=root_name,
            mime_type=FOLDER_MIME,
            created_time=now,
            modified_time=now,
        )
        self._files[root_id] = _StoredFile(record=root, seq=0)

    # ----------------------------
    # Test / setup helpers
    # ----------------------------
    def fail_next(self, operation: str, exc: BaseException, times: int = 1) -> None:
        self._failures.setdefault(operation, []).extend([exc] * times)

    def add_folder(self, name: str, parent_id: Optional[str] = None) -> RemoteRecord:
        """Create a folder as another client would (recorded in the change log)."""
        return self._create(name, parent_id or self.root_id, FOLDER_MIME, None)

    def add_file(
        self,
        name: str,
        content: bytes,
        parent_id: Optional[str] = None,
        *,
        mime_type: str = DEFAULT_MIME,
        properties: Optional[dict[str, str]] = None,
    ) -> RemoteRecord:
        return self._create(name, parent_id or self.root_id, mime_type, content, properties)

    def content_of(self, entry_id: str) -> bytes:
        return self._stored(entry_id).content

    def record_of(self, entry_id: str) -> RemoteRecord:
        return self._stored(entry_id).record

    def has(self, entry_id: str) -> bool:
        return entry_id in self._files

    # ----------------------------
    # RemoteStorageService
    # ----------------------------
    def get_change_marker(self) -> str:
        self._enter("get_change_marker")
        return str(len(self._changes))

    def get_entry(self, entry_id: str) -> Optional[RemoteRecord]:
        self._enter("get_entry", entry_id)
        return self._stored(self._resolve(entry_id)).record

    def list_entries(
        self,
        page_token: Optional[str] = None,
        *,
        query: Optional[str] = None,
    ) -> RecordPage:
        self._enter("list_entries", page_token)
        ordered = sorted(
            (f for f in self._files.values() if f.record.id != self.root_id),
            key=lambda f: f.seq,
        )
        start = int(page_token) if page_token else 0
        end = start + self.page_size
        records = [f.record for f in ordered[start:end]]
        next_token = str(end) if end < len(ordered) else None
        return RecordPage(records=records, next_page_token=next_token)

    def list_changes(self, since_token: str) -> ChangePage:
        self._enter("list_changes", since_token)
        self._polls += 1

        start = int(since_token)
        visible_end = start
        while (
            visible_end < len(self._changes)
            and self._changes[visible_end].visible_at_poll <= self._polls
        ):
            visible_end += 1

        end = min(start + self.page_size, visible_end)
        records = [c.record for c in self._changes[start:end]]
        if end < visible_end:
            return ChangePage(records=records, next_page_token=str(end))
        return ChangePage(records=records, new_marker=str(end))

    def create_folder(self, parent_id: str, name: str) -> RemoteRecord:
        self._enter("create_folder", parent_id, name)
        return self._create(name, parent_id, FOLDER_MIME, None)

    def delete_entry(self, entry_id: str) -> bool:
        self._enter("delete_entry", entry_id)
        entry_id = self._resolve(entry_id)
        self._stored(entry_id)
        if entry_id == self.root_id:
            raise InvalidArgumentError("The root folder can not be deleted")

        for eid in [entry_id] + self._descendants(entry_id):
            self._files.pop(eid, None)
            self._log(RemoteRecord.tombstone(eid))
        return True

    def update_metadata(
        self,
        entry_id: str,
        patch: dict[str, Any],
        *,
        add_parent_id: Optional[str] = None,
        remove_parent_id: Optional[str] = None,
    ) -> RemoteRecord:
        self._enter("update_metadata", entry_id, dict(patch), add_parent_id, remove_parent_id)
        stored = self._stored(self._resolve(entry_id))
        record = stored.record

        changes: dict[str, Any] = {"modified_time": now_utc()}
        if "name" in patch:
            changes["name"] = patch["name"]
        if "properties" in patch:
            changes["properties"] = dict(patch["properties"])
        if "modified_time" in patch and isinstance(patch["modified_time"], datetime):
            changes["modified_time"] = patch["modified_time"]
        if add_parent_id is not None:
            self._stored(add_parent_id)
            if remove_parent_id is not None and remove_parent_id != record.parent_id:
                raise ConflictError(
                    "removeParents does not match the current parent",
                    details={"entry_id": record.id, "parent_id": remove_parent_id},
                )
            changes["parent_id"] = add_parent_id

        stored.record = replace(record, **changes)
        self._log(stored.record)
        return stored.record

    def start_upload(
        self,
        name: str,
        parent_id: str,
        total_size: int,
        mime_type: str,
    ) -> UploadChannel:
        self._enter("start_upload", name, parent_id, total_size)
        self._stored(self._resolve(parent_id))
        channel = UploadChannel(
            name=name,
            parent_id=self._resolve(parent_id),
            total_size=total_size,
            mime_type=mime_type,
            session_uri=f"memory://upload/{next(self._ids)}",
        )
        self._uploads[channel.session_uri] = _Upload(channel=channel)
        return channel

    def upload_chunk(self, channel: UploadChannel, data: bytes) -> UploadChunkResult:
        self._enter("upload_chunk", channel.session_uri, len(data))
        upload = self._uploads.get(channel.session_uri)
        if upload is None:
            raise NotFoundError("Upload session expired", details={"name": channel.name})

        upload.buffer.extend(data)
        channel.bytes_committed = len(upload.buffer)
        if channel.bytes_committed < channel.total_size:
            return UploadChunkResult(bytes_committed=channel.bytes_committed)
        if channel.bytes_committed > channel.total_size:
            raise InvalidArgumentError(
                "More bytes uploaded than announced",
                details={"name": channel.name, "total_size": channel.total_size},
            )

        del self._uploads[channel.session_uri]
        record = self._create(
            channel.name,
            channel.parent_id,
            channel.mime_type,
            bytes(upload.buffer),
        )
        return UploadChunkResult(bytes_committed=channel.bytes_committed, record=record)

    def open_download(
        self,
        entry_id: str,
        offset: Optional[int] = None,
        length: Optional[int] = None,
    ) -> IterableBody:
        self._enter("open_download", entry_id, offset, length)
        content = self._stored(self._resolve(entry_id)).content
        start = offset or 0
        end = len(content) if length is None else min(len(content), start + length)
        data = content[start:end]
        chunk = max(1, self.page_size)
        return IterableBody(chunks=[data[i:i + chunk] for i in range(0, len(data), chunk)])

    # ----------------------------
    # Internals
    # ----------------------------
    def _enter(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, *args))
        queued = self._failures.get(operation)
        if queued:
            raise queued.pop(0)

    def _resolve(self, entry_id: str) -> str:
        return self.root_id if entry_id == ROOT_ALIAS else entry_id

    def _stored(self, entry_id: str) -> _StoredFile:
        stored = self._files.get(entry_id)
        if stored is None:
            raise NotFoundError("File not found", details={"entry_id": entry_id})
        return stored

    def _create(
        self,
        name: str,
        parent_id: str,
        mime_type: str,
        content: Optional[bytes],
        properties: Optional[dict[str, str]] = None,
    ) -> RemoteRecord:
        parent_id = self._resolve(parent_id)
        parent = self._stored(parent_id)
        if parent.record.mime_type != FOLDER_MIME:
            raise InvalidArgumentError("Parent is not a folder", details={"parent_id": parent_id})

        now = now_utc()
        record = RemoteRecord(
            id=f"id-{next(self._ids)}",
            name=name,
            parent_id=parent_id,
            mime_type=mime_type,
            size=None if content is None else len(content),
            md5_checksum=None if content is None else hashlib.md5(content).hexdigest(),
            properties=dict(properties or {}),
            created_time=now,
            modified_time=now,
        )
        self._files[record.id] = _StoredFile(
            record=record,
            content=content or b"",
            seq=next(self._seq),
        )
        self._log(record)
        return record

    def _log(self, record: RemoteRecord) -> None:
        self._changes.append(
            _Change(record=record, visible_at_poll=self._polls + 1 + self.visibility_lag)
        )

    def _descendants(self, entry_id: str) -> list[str]:
        result: list[str] = []
        frontier = [entry_id]
        while frontier:
            parent = frontier.pop()
            for f in self._files.values():
                if f.record.parent_id == parent and f.record.id not in result:
                    result.append(f.record.id)
                    frontier.append(f.record.id)
        return result
