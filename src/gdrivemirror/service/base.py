"""Capability surface the mirror consumes from a remote storage service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Iterator, Optional, Protocol

from gdrivemirror.models import RemoteRecord


@dataclass(slots=True)
class RecordPage:
    """One page of a full listing."""

    records: list[RemoteRecord]
    next_page_token: Optional[str] = None


@dataclass(slots=True)
class ChangePage:
    """
    One page of the change feed.

    ``new_marker`` is set only on the last page; it is the continuation token
    for the next incremental pass.
    """

    records: list[RemoteRecord]
    next_page_token: Optional[str] = None
    new_marker: Optional[str] = None


@dataclass(slots=True)
class UploadChannel:
    """Handle of an open resumable upload."""

    name: str
    parent_id: str
    total_size: int
    mime_type: str
    session_uri: str
    bytes_committed: int = 0
    state: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class UploadChunkResult:
    """Outcome of one chunk: ``record`` is set once the remote materialised the file."""

    bytes_committed: int
    record: Optional[RemoteRecord] = None

    @property
    def complete(self) -> bool:
        return self.record is not None


class DownloadBody(Protocol):
    """Single-pass response body of a download request."""

    def __iter__(self) -> Iterator[bytes]: ...

    def close(self) -> None: ...


@dataclass(slots=True)
class IterableBody:
    """DownloadBody over an in-memory iterable of chunks."""

    chunks: Iterable[bytes]
    closed: bool = False

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self.chunks:
            if self.closed:
                return
            yield chunk

    def close(self) -> None:
        self.closed = True


class RemoteStorageService(Protocol):
    """
    Remote operations used by the mirror.

    Implementations raise their native errors; RetryingInvoker translates and
    classifies them.
    """

    def get_change_marker(self) -> str: ...

    def get_entry(self, entry_id: str) -> Optional[RemoteRecord]: ...

    def list_entries(
        self,
        page_token: Optional[str] = None,
        *,
        query: Optional[str] = None,
    ) -> RecordPage: ...

    def list_changes(self, since_token: str) -> ChangePage: ...

    def create_folder(self, parent_id: str, name: str) -> RemoteRecord: ...

    def delete_entry(self, entry_id: str) -> bool: ...

    def update_metadata(
        self,
        entry_id: str,
        patch: dict[str, Any],
        *,
        add_parent_id: Optional[str] = None,
        remove_parent_id: Optional[str] = None,
    ) -> RemoteRecord: ...

    def start_upload(
        self,
        name: str,
        parent_id: str,
        total_size: int,
        mime_type: str,
    ) -> UploadChannel: ...

    def upload_chunk(self, channel: UploadChannel, data: bytes) -> UploadChunkResult: ...

    def open_download(
        self,
        entry_id: str,
        offset: Optional[int] = None,
        length: Optional[int] = None,
    ) -> DownloadBody: ...


def build_patch(
    *,
    name: Optional[str] = None,
    properties: Optional[dict[str, str]] = None,
    modified_time: Optional[datetime] = None,
) -> dict[str, Any]:
    """Metadata patch in service-neutral form (name/properties/modified_time)."""
    patch: dict[str, Any] = {}
    if name is not None:
        patch["name"] = name
    if properties is not None:
        patch["properties"] = dict(properties)
    if modified_time is not None:
        patch["modified_time"] = modified_time
    return patch
