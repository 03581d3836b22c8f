"""Ranged, single-pass download streams."""

from __future__ import annotations

import io
import logging
from typing import Iterator, Optional

from gdrivemirror.errors import InvalidArgumentError, NotFoundError, map_remote_exception
from gdrivemirror.models import Entry, File
from gdrivemirror.retry import RetryingInvoker
from gdrivemirror.service import DownloadBody, IterableBody, RemoteStorageService
from gdrivemirror.util.mime import is_download_disallowed

logger = logging.getLogger(__name__)


def validate_downloadable(entry: Entry) -> File:
    if not isinstance(entry, File) or is_download_disallowed(entry.mime_type):
        raise InvalidArgumentError(
            f"Entry has no downloadable content: {entry.name}",
            details={"entry_id": entry.id, "mime_type": getattr(entry, "mime_type", None)},
        )
    return entry


class ChunkedDownloadStream(io.RawIOBase):
    """
    Read-only view over one range request.

    The stream can not seek or restart. A failure while reading is raised to
    the caller, who may reopen at ``position``.
    """

    def __init__(self, body: DownloadBody, *, entry_id: str, offset: int = 0) -> None:
        super().__init__()
        self._body = body
        self._entry_id = entry_id
        self._offset = offset
        self._position = offset
        self._chunks: Optional[Iterator[bytes]] = None
        self._pending = b""
        self._eof = False

    @classmethod
    def open(
        cls,
        invoker: RetryingInvoker,
        service: RemoteStorageService,
        entry_id: str,
        offset: Optional[int] = None,
        length: Optional[int] = None,
    ) -> ChunkedDownloadStream:
        if offset is not None and offset < 0:
            raise InvalidArgumentError("offset must be >= 0", details={"entry_id": entry_id})
        if length is not None and length < 0:
            raise InvalidArgumentError("length must be >= 0", details={"entry_id": entry_id})

        if length == 0:
            # An empty range has no valid HTTP representation.
            return cls(IterableBody(chunks=[]), entry_id=entry_id, offset=offset or 0)

        body = invoker.invoke(
            lambda: service.open_download(entry_id, offset, length),
            operation="open_download",
            entry_id=entry_id,
        )
        if body is None:
            raise NotFoundError(
                "File not found",
                details={"entry_id": entry_id, "operation": "open_download"},
            )
        logger.debug(f"Opened download of {entry_id} at offset {offset or 0} (length {length})")
        return cls(body, entry_id=entry_id, offset=offset or 0)

    @property
    def entry_id(self) -> str:
        return self._entry_id

    @property
    def position(self) -> int:
        """Absolute offset of the next byte within the remote file."""
        return self._position

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def readinto(self, buffer) -> int:  # type: ignore[no-untyped-def]
        if self.closed:
            raise ValueError("I/O operation on closed download stream")

        while not self._pending:
            if self._eof:
                return 0
            chunk = self._next_chunk()
            if chunk is None:
                self._eof = True
                return 0
            self._pending = chunk

        n = min(len(buffer), len(self._pending))
        buffer[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        self._position += n
        return n

    def close(self) -> None:
        if not self.closed:
            self._body.close()
        super().close()

    def _next_chunk(self) -> Optional[bytes]:
        if self._chunks is None:
            self._chunks = iter(self._body)
        try:
            return next(self._chunks)
        except StopIteration:
            return None
        except Exception as exc:
            mapped = map_remote_exception(exc)
            if mapped is exc:
                raise
            raise mapped from exc
