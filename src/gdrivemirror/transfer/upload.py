"""Chunked resumable uploads."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from gdrivemirror.config import DEFAULT_CHUNK_SIZE
from gdrivemirror.errors import (
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    UploadIncompleteError,
)
from gdrivemirror.models import File, RemoteRecord, entry_from_record
from gdrivemirror.retry import RetryingInvoker
from gdrivemirror.service import RemoteStorageService, UploadChannel
from gdrivemirror.util.mime import DEFAULT_MIME

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
CompletionCallback = Callable[[RemoteRecord], File]


class ChunkedUploadSession:
    """
    Buffer appended bytes and flush them to a resumable upload channel.

    A flush happens when the buffer reaches ``chunk_size`` or when the
    buffered bytes complete the file. The remote channel is opened lazily on
    the first flush, so an aborted session before that point never touches
    the remote. The file only materialises remotely on the final chunk.
    """

    def __init__(
        self,
        invoker: RetryingInvoker,
        service: RemoteStorageService,
        parent_id: str,
        name: str,
        file_size: int,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        mime_type: str = DEFAULT_MIME,
        on_complete: Optional[CompletionCallback] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        if file_size < 0:
            raise InvalidArgumentError("file_size must be >= 0", details={"name": name})
        if chunk_size <= 0:
            raise InvalidArgumentError("chunk_size must be positive", details={"name": name})

        self._invoker = invoker
        self._service = service
        self._parent_id = parent_id
        self._name = name
        self._file_size = file_size
        self._chunk_size = chunk_size
        self._mime_type = mime_type
        self._on_complete = on_complete
        self._progress = progress_callback

        self._buffer = bytearray()
        self._bytes_sent = 0
        self._flushes = 0
        self._channel: Optional[UploadChannel] = None
        self._entry: Optional[File] = None
        self._aborted = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def file_size(self) -> int:
        return self._file_size

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def bytes_sent(self) -> int:
        return self._bytes_sent

    @property
    def bytes_buffered(self) -> int:
        return len(self._buffer)

    @property
    def flushes(self) -> int:
        return self._flushes

    @property
    def entry(self) -> Optional[File]:
        return self._entry

    @property
    def finished(self) -> bool:
        return self._entry is not None

    def append(self, data: bytes) -> Optional[File]:
        """
        Add bytes to the upload.

        Returns:
            The finalized File once the remote confirms completion, else None.

        Raises:
            InvalidArgumentError: if more bytes than ``file_size`` are appended.
            UploadIncompleteError: if the last chunk was not confirmed.
        """
        self._ensure_open()
        if self._bytes_sent + len(self._buffer) + len(data) > self._file_size:
            raise InvalidArgumentError(
                "Appended data exceeds the declared file size",
                details={"name": self._name, "file_size": self._file_size},
            )

        result: Optional[File] = None
        view = memoryview(data)
        while view:
            room = self._chunk_size - len(self._buffer)
            self._buffer.extend(view[:room])
            view = view[room:]

            while result is None and self._ready_to_flush():
                result = self._flush()
        return result

    def finish(self) -> File:
        """Return the uploaded entry; a zero-byte file is created here."""
        if self._entry is not None:
            return self._entry
        self._ensure_open()

        if self._file_size == 0:
            self._flush()
            if self._entry is not None:
                return self._entry

        raise UploadIncompleteError(
            "Not all bytes of the file were provided",
            details={
                "name": self._name,
                "bytes_sent": self._bytes_sent,
                "bytes_buffered": len(self._buffer),
                "file_size": self._file_size,
            },
        )

    def abort(self) -> None:
        """Discard buffered data; the remote file never materialises."""
        if self._aborted or self._entry is not None:
            return
        logger.debug(
            f"Aborting upload of {self._name} after {self._bytes_sent} of {self._file_size} bytes"
        )
        self._buffer.clear()
        self._aborted = True

    def _ensure_open(self) -> None:
        if self._aborted:
            raise InvalidStateError("Upload was aborted", details={"name": self._name})
        if self._entry is not None:
            raise InvalidStateError("Upload is already complete", details={"name": self._name})

    def _ready_to_flush(self) -> bool:
        return bool(self._buffer) and (
            len(self._buffer) == self._chunk_size
            or self._bytes_sent + len(self._buffer) == self._file_size
        )

    def _flush(self) -> Optional[File]:
        if self._channel is None:
            self._channel = self._invoker.invoke(
                lambda: self._service.start_upload(
                    self._name, self._parent_id, self._file_size, self._mime_type
                ),
                operation="start_upload",
                entry_id=self._parent_id,
            )
            if self._channel is None:
                raise NotFoundError(
                    "Upload target folder not found",
                    details={"entry_id": self._parent_id, "operation": "start_upload"},
                )

        channel = self._channel
        data = bytes(self._buffer)
        result = self._invoker.invoke(
            lambda: self._service.upload_chunk(channel, data),
            operation="upload_chunk",
            entry_id=self._parent_id,
        )
        if result is None:
            raise NotFoundError(
                "Upload session no longer exists",
                details={"name": self._name, "operation": "upload_chunk"},
            )

        # The remote may commit only a prefix of the chunk; the rest is re-sent.
        if result.record is not None:
            accepted = len(data)
        else:
            accepted = min(max(result.bytes_committed - self._bytes_sent, 0), len(data))
        if data and not accepted and result.record is None:
            raise UploadIncompleteError(
                "Remote accepted none of the chunk",
                details={
                    "name": self._name,
                    "bytes_sent": self._bytes_sent,
                    "bytes_committed": result.bytes_committed,
                },
            )

        del self._buffer[:accepted]
        self._bytes_sent += accepted
        self._flushes += 1
        if accepted < len(data):
            logger.debug(
                f"Remote committed {accepted} of {len(data)} bytes of {self._name}; "
                f"re-sending from offset {self._bytes_sent}"
            )
        logger.debug(
            f"Uploaded chunk {self._flushes} of {self._name}: "
            f"{self._bytes_sent}/{self._file_size} bytes"
        )
        if self._progress is not None:
            self._progress(self._bytes_sent, self._file_size)

        if result.record is not None:
            if self._on_complete is not None:
                self._entry = self._on_complete(result.record)
            else:
                entry = entry_from_record(result.record)
                if not isinstance(entry, File):
                    raise InvalidStateError(
                        "Uploaded entry is not a file",
                        details={"entry_id": entry.id, "name": self._name},
                    )
                self._entry = entry
            return self._entry

        if self._bytes_sent >= self._file_size:
            raise UploadIncompleteError(
                "Final chunk sent but the remote did not confirm the upload",
                details={
                    "name": self._name,
                    "bytes_sent": self._bytes_sent,
                    "bytes_committed": result.bytes_committed,
                },
            )
        return None
