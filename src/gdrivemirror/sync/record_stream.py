"""Record sources for one reconciliation pass."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from gdrivemirror.errors import InvalidStateError
from gdrivemirror.models import RemoteRecord
from gdrivemirror.retry import RetryingInvoker
from gdrivemirror.service import RemoteStorageService

logger = logging.getLogger(__name__)


class RecordStream:
    """
    Single-pass iterator of RemoteRecords.

    The continuation token of the pass is available through ``token`` once
    the stream is exhausted.
    """

    def __init__(self, invoker: RetryingInvoker, service: RemoteStorageService) -> None:
        self._invoker = invoker
        self._service = service
        self._token: Optional[str] = None
        self._exhausted = False
        self._iterator: Optional[Iterator[RemoteRecord]] = None

    def __iter__(self) -> Iterator[RemoteRecord]:
        return self

    def __next__(self) -> RemoteRecord:
        if self._iterator is None:
            self._iterator = self._records()
        try:
            return next(self._iterator)
        except StopIteration:
            self._exhausted = True
            raise

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def token(self) -> str:
        if not self._exhausted or self._token is None:
            raise InvalidStateError("Continuation token is only available after the stream is exhausted")
        return self._token

    def _records(self) -> Iterator[RemoteRecord]:
        raise NotImplementedError


class FullListingStream(RecordStream):
    """
    Every live record, root first.

    The change marker is captured before listing starts; records created
    while the listing runs show up on the next incremental pass.
    """

    def _records(self) -> Iterator[RemoteRecord]:
        marker = self._invoker.invoke(
            self._service.get_change_marker,
            operation="get_change_marker",
        )
        if marker is None:
            raise InvalidStateError("Remote did not provide a change marker")
        self._token = marker

        root = self._invoker.invoke(
            lambda: self._service.get_entry("root"),
            operation="get_entry",
            entry_id="root",
        )
        if root is None:
            raise InvalidStateError("Remote root folder not found", details={"entry_id": "root"})
        # The listed root carries no parent, which is what marks it as root.
        yield root

        page_token: Optional[str] = None
        pages = 0
        while True:
            page = self._invoker.invoke(
                lambda: self._service.list_entries(page_token),
                operation="list_entries",
            )
            if page is None:
                raise InvalidStateError("Listing page vanished", details={"page_token": page_token})
            pages += 1

            for record in page.records:
                if record.trashed or record.deleted:
                    continue
                yield record

            if not page.next_page_token:
                break
            page_token = page.next_page_token

        logger.debug(f"Full listing finished after {pages} page(s), marker {marker}")


class ChangeFeedStream(RecordStream):
    """Change records since ``since_token``; trashed files arrive as tombstones."""

    def __init__(
        self,
        invoker: RetryingInvoker,
        service: RemoteStorageService,
        since_token: str,
    ) -> None:
        super().__init__(invoker, service)
        self._since_token = since_token

    def _records(self) -> Iterator[RemoteRecord]:
        page_token = self._since_token
        while True:
            page = self._invoker.invoke(
                lambda: self._service.list_changes(page_token),
                operation="list_changes",
            )
            if page is None:
                raise InvalidStateError(
                    "Change feed rejected the continuation token",
                    details={"token": page_token},
                )

            for record in page.records:
                if record.trashed and not record.deleted:
                    yield RemoteRecord.tombstone(record.id)
                else:
                    yield record

            if page.new_marker:
                self._token = page.new_marker
                break
            if not page.next_page_token:
                # A feed page without a follow-up keeps the current position.
                self._token = page_token
                break
            page_token = page.next_page_token

        logger.debug(f"Change feed from {self._since_token} ends at {self._token}")
