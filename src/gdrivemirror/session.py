"""DriveSession: the mirror of one Drive, its synchronizer and its mutations."""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime
from typing import Callable, Iterable, Optional, Union, cast

from gdrivemirror.auth import OAuthClient
from gdrivemirror.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONSISTENCY_ATTEMPTS,
    DEFAULT_CONSISTENCY_INTERVAL_SEC,
    DriveConfig,
)
from gdrivemirror.errors import (
    ConsistencyTimeoutError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    SnapshotError,
    TargetExistsError,
    TargetNotEmptyError,
)
from gdrivemirror.graph import (
    PATH_SEPARATOR,
    EntryGraph,
    validate_exists,
    validate_is_folder,
    validate_move_no_cycle,
    validate_name,
    validate_not_root,
)
from gdrivemirror.models import Entry, File, Folder, RemoteRecord, SyncReport
from gdrivemirror.retry import RetryingInvoker
from gdrivemirror.service import GoogleDriveService, RemoteStorageService, build_patch
from gdrivemirror.storage import SnapshotStore
from gdrivemirror.sync import EntrySynchronizer, GraphListener
from gdrivemirror.transfer import (
    ChunkedDownloadStream,
    ChunkedUploadSession,
    ProgressCallback,
    validate_downloadable,
)
from gdrivemirror.util.mime import DEFAULT_MIME

logger = logging.getLogger(__name__)

EntryRef = Union[Entry, str]


class DriveSession:
    """
    Mirror of a Drive hierarchy with graph-level mutations.

    Queries read the in-memory graph only. Mutations are validated against
    the graph, sent to the remote and applied locally by reconciling the
    remote's response, so the graph never shows a change the remote rejected.
    """

    def __init__(
        self,
        service: RemoteStorageService,
        *,
        invoker: Optional[RetryingInvoker] = None,
        store: Optional[SnapshotStore] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        consistency_attempts: int = DEFAULT_CONSISTENCY_ATTEMPTS,
        consistency_interval_sec: float = DEFAULT_CONSISTENCY_INTERVAL_SEC,
        listeners: Iterable[GraphListener] = (),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._service = service
        self._invoker = invoker or RetryingInvoker()
        self._store = store
        self._chunk_size = chunk_size
        self._consistency_attempts = consistency_attempts
        self._consistency_interval_sec = consistency_interval_sec
        self._sleep = sleep
        self._synchronizer = EntrySynchronizer(
            EntryGraph(),
            self._invoker,
            service,
            store=store,
            listeners=listeners,
        )

    @classmethod
    def connect(cls, config: DriveConfig) -> DriveSession:
        """
        Authorize, restore the persisted snapshot if any, and sync.

        A restored snapshot is only a starting point; the incremental pass
        that follows brings it up to date before the session is returned.
        """
        oauth_client = OAuthClient(config.auth_info(), application_name=config.application_name)
        session = cls(
            GoogleDriveService(oauth_client),
            invoker=RetryingInvoker(oauth_client.refresh, policy=config.retry_policy()),
            store=SnapshotStore(config.snapshot_path),
            chunk_size=config.chunk_size,
            consistency_attempts=config.consistency_attempts,
            consistency_interval_sec=config.consistency_interval_sec,
        )

        try:
            session.restore()
        except SnapshotError as exc:
            logger.warning(f"Ignoring unreadable snapshot, running a full sync: {exc}")

        session.sync()
        return session

    # ----------------------------
    # State
    # ----------------------------
    @property
    def graph(self) -> EntryGraph:
        return self._synchronizer.graph

    @property
    def synchronizer(self) -> EntrySynchronizer:
        return self._synchronizer

    @property
    def continuation_token(self) -> Optional[str]:
        return self._synchronizer.state.continuation_token

    def sync(self) -> SyncReport:
        return self._synchronizer.synchronize()

    def snapshot(self) -> None:
        """Persist the current token and graph."""
        token = self.continuation_token
        if self._store is None:
            raise InvalidStateError("Session has no snapshot store")
        if token is None:
            raise InvalidStateError("Nothing to snapshot yet. Run a synchronization first.")
        self._store.save(token, self.graph)

    def restore(self) -> bool:
        """
        Replace the graph with the persisted snapshot.

        Returns:
            False if there is no store or no snapshot, True otherwise.
        """
        if self._store is None:
            return False
        snapshot = self._store.load()
        if snapshot is None:
            return False
        self._synchronizer.restore(snapshot.token, snapshot.graph)
        logger.info(f"Restored {len(snapshot.graph)} entries at token {snapshot.token}")
        return True

    def wait_for(
        self,
        predicate: Callable[[DriveSession], bool],
        *,
        attempts: Optional[int] = None,
        interval_sec: Optional[float] = None,
    ) -> SyncReport:
        """
        Sync until ``predicate(self)`` holds.

        The remote's change feed is only eventually consistent, so a mutation
        made elsewhere may take several passes to show up.

        Raises:
            ConsistencyTimeoutError: if the predicate never held.
        """
        attempts = self._consistency_attempts if attempts is None else attempts
        interval = self._consistency_interval_sec if interval_sec is None else interval_sec

        for attempt in range(1, attempts + 1):
            report = self.sync()
            if predicate(self):
                return report
            logger.debug(f"wait_for: expected state not visible yet (try {attempt} of {attempts})")
            if attempt < attempts:
                self._sleep(interval)

        raise ConsistencyTimeoutError(
            "Remote did not reflect the expected state",
            details={"attempts": attempts, "interval_sec": interval},
        )

    # ----------------------------
    # Queries
    # ----------------------------
    def root(self) -> Folder:
        return self.graph.root

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        return self.graph.find(entry_id)

    def get_entry_by_path(self, path: str) -> Optional[Entry]:
        return self.graph.resolve_path(path)

    def path_of(self, entry: EntryRef) -> Optional[str]:
        return self.graph.path(self._lookup(entry).id)

    def children(self, folder: EntryRef) -> list[Entry]:
        return self.graph.children(self._lookup_folder(folder).id)

    def size_of(self, entry: EntryRef) -> int:
        return self.graph.size_of(self._lookup(entry).id)

    # ----------------------------
    # Mutations
    # ----------------------------
    def create_folder(
        self,
        parent: EntryRef,
        name: str,
        *,
        recursive: bool = False,
        exist_ok: bool = False,
    ) -> Folder:
        """
        Create ``name`` below ``parent``.

        With ``recursive`` the name may be a "/"-separated path; existing
        intermediate folders are reused.

        Raises:
            InvalidArgumentError: for "/" in name without ``recursive``.
            TargetExistsError: if a file blocks the path, or the final folder
                exists and ``exist_ok`` is False.
        """
        current = self._lookup_folder(parent)
        if PATH_SEPARATOR in name and not recursive:
            raise InvalidArgumentError(
                f"Folder name can not contain '{PATH_SEPARATOR}'. Use recursive=True to create nested folders.",
                details={"name": name, "parent_id": current.id},
            )

        segments = [s for s in name.split(PATH_SEPARATOR) if s] if recursive else [name]
        if not segments:
            raise InvalidArgumentError("Folder name must be a non-empty string", details={"name": name})
        for segment in segments:
            validate_name(segment)

        for index, segment in enumerate(segments):
            is_last = index == len(segments) - 1
            existing = self.graph.child_by_name(current.id, segment)
            if existing is not None:
                if not isinstance(existing, Folder):
                    raise TargetExistsError(
                        f"A file named '{segment}' already exists",
                        details={"parent_id": current.id, "name": segment, "entry_id": existing.id},
                    )
                if is_last and not exist_ok:
                    raise TargetExistsError(
                        f"Folder '{segment}' already exists",
                        details={"parent_id": current.id, "name": segment, "entry_id": existing.id},
                    )
                current = existing
                continue

            parent_id = current.id
            record = self._invoker.invoke(
                lambda: self._service.create_folder(parent_id, segment),
                operation="create_folder",
                entry_id=parent_id,
            )
            created = self._reconcile(record, operation="create_folder", entry_id=parent_id)
            if not isinstance(created, Folder):
                raise InvalidStateError(
                    "Remote did not create a folder",
                    details={"entry_id": created.id, "operation": "create_folder"},
                )
            logger.debug(f"Created folder {created.id} ({segment}) below {parent_id}")
            current = created

        return current

    def move(
        self,
        entry: EntryRef,
        new_parent: EntryRef,
        new_name: Optional[str] = None,
        *,
        overwrite: bool = False,
    ) -> Entry:
        """
        Move and/or rename ``entry``.

        Unchanged parent and name is a no-op without any remote call. An
        existing target of the same name is replaced only with ``overwrite``,
        and never if it is a non-empty folder.
        """
        target = self._lookup(entry)
        validate_not_root(self.graph, target.id, "move")
        parent = self._lookup_folder(new_parent)
        name = target.name if new_name is None else new_name
        validate_name(name)

        attached = self.graph.is_attached(target.id)
        if target.parent_id == parent.id and target.name == name and attached:
            return target

        validate_move_no_cycle(self.graph, target.id, parent.id)

        existing = self.graph.child_by_name(parent.id, name)
        if existing is not None and existing.id != target.id:
            if isinstance(existing, Folder) and self.graph.children(existing.id):
                raise TargetNotEmptyError(
                    f"Can not overwrite non-empty folder '{name}'",
                    details={"entry_id": existing.id, "operation": "move"},
                )
            if not overwrite:
                raise TargetExistsError(
                    f"An entry named '{name}' already exists",
                    details={"entry_id": existing.id, "parent_id": parent.id, "operation": "move"},
                )
            self._delete_remote(existing)

        patch = build_patch(name=name) if name != target.name else {}
        add_parent_id: Optional[str] = None
        remove_parent_id: Optional[str] = None
        if parent.id != target.parent_id or not attached:
            add_parent_id = parent.id
            remove_parent_id = target.parent_id

        entry_id = target.id
        record = self._invoker.invoke(
            lambda: self._service.update_metadata(
                entry_id,
                patch,
                add_parent_id=add_parent_id,
                remove_parent_id=remove_parent_id,
            ),
            operation="move",
            entry_id=entry_id,
        )
        return self._reconcile(record, operation="move", entry_id=entry_id)

    def rename(self, entry: EntryRef, new_name: str, *, overwrite: bool = False) -> Entry:
        target = self._lookup(entry)
        if target.parent_id is None:
            raise InvalidArgumentError(
                "Entry has no parent to rename it in",
                details={"entry_id": target.id, "operation": "rename"},
            )
        return self.move(target, target.parent_id, new_name, overwrite=overwrite)

    def delete(self, entry: EntryRef, *, recursive: bool = False) -> None:
        """
        Delete ``entry`` remotely and drop it (and its subtree) from the graph.

        Raises:
            InvalidArgumentError: for the root.
            TargetNotEmptyError: for a non-empty folder without ``recursive``.
        """
        target = self._lookup(entry)
        validate_not_root(self.graph, target.id, "delete")
        if isinstance(target, Folder) and not recursive and self.graph.children(target.id):
            raise TargetNotEmptyError(
                f"Folder '{target.name}' is not empty",
                details={"entry_id": target.id, "operation": "delete"},
            )
        self._delete_remote(target)

    def update_entry(
        self,
        entry: EntryRef,
        *,
        properties: Optional[dict[str, str]] = None,
        modified_time: Optional[datetime] = None,
    ) -> Entry:
        """Patch custom properties and/or the modification time."""
        target = self._lookup(entry)
        patch = build_patch(properties=properties, modified_time=modified_time)
        if not patch:
            return target

        entry_id = target.id
        record = self._invoker.invoke(
            lambda: self._service.update_metadata(entry_id, patch),
            operation="update_entry",
            entry_id=entry_id,
        )
        return self._reconcile(record, operation="update_entry", entry_id=entry_id)

    # ----------------------------
    # Transfers
    # ----------------------------
    def upload(
        self,
        parent: EntryRef,
        name: str,
        file_size: int,
        *,
        chunk_size: Optional[int] = None,
        mime_type: str = DEFAULT_MIME,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ChunkedUploadSession:
        folder = self._lookup_folder(parent)
        validate_name(name)
        return ChunkedUploadSession(
            self._invoker,
            self._service,
            folder.id,
            name,
            file_size,
            chunk_size=chunk_size or self._chunk_size,
            mime_type=mime_type,
            on_complete=self._complete_upload,
            progress_callback=progress_callback,
        )

    def upload_bytes(
        self,
        parent: EntryRef,
        name: str,
        data: bytes,
        *,
        mime_type: str = DEFAULT_MIME,
    ) -> File:
        upload = self.upload(parent, name, len(data), mime_type=mime_type)
        upload.append(data)
        return upload.finish()

    def upload_file(
        self,
        parent: EntryRef,
        local_path: str,
        *,
        name: Optional[str] = None,
        chunk_size: Optional[int] = None,
        mime_type: str = DEFAULT_MIME,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> File:
        """Upload a local file, reading it one chunk at a time."""
        if not os.path.isfile(local_path):
            raise InvalidArgumentError(
                f"File does not exist: {local_path}",
                details={"path": local_path},
            )

        upload = self.upload(
            parent,
            name or os.path.basename(local_path),
            os.path.getsize(local_path),
            chunk_size=chunk_size,
            mime_type=mime_type,
            progress_callback=progress_callback,
        )
        try:
            with open(local_path, "rb") as f:
                while True:
                    chunk = f.read(upload.chunk_size)
                    if not chunk:
                        break
                    upload.append(chunk)
            return upload.finish()
        except BaseException:
            upload.abort()
            raise

    def download(
        self,
        file: EntryRef,
        offset: Optional[int] = None,
        length: Optional[int] = None,
    ) -> ChunkedDownloadStream:
        target = validate_downloadable(self._lookup(file))
        return ChunkedDownloadStream.open(self._invoker, self._service, target.id, offset, length)

    def read_content(
        self,
        file: EntryRef,
        offset: Optional[int] = None,
        length: Optional[int] = None,
    ) -> bytes:
        with self.download(file, offset, length) as stream:
            return stream.read()

    # ----------------------------
    # Internals
    # ----------------------------
    def _lookup(self, entry: EntryRef) -> Entry:
        entry_id = entry if isinstance(entry, str) else entry.id
        validate_exists(self.graph, entry_id, "Entry")
        return self.graph.get(entry_id)

    def _lookup_folder(self, folder: EntryRef) -> Folder:
        entry = self._lookup(folder)
        validate_is_folder(self.graph, entry.id, "Parent")
        return cast(Folder, entry)

    def _reconcile(self, record: Optional[RemoteRecord], *, operation: str, entry_id: str) -> Entry:
        if record is None:
            raise NotFoundError(
                "Remote entry not found",
                details={"entry_id": entry_id, "operation": operation},
            )
        entry = self._synchronizer.apply_record(record)
        if entry is None:
            raise InvalidStateError(
                "Remote response could not be applied to the mirror",
                details={"entry_id": record.id, "operation": operation},
            )
        return entry

    def _complete_upload(self, record: RemoteRecord) -> File:
        entry = self._reconcile(record, operation="upload", entry_id=record.id)
        if not isinstance(entry, File):
            raise InvalidStateError(
                "Uploaded entry is not a file",
                details={"entry_id": entry.id, "operation": "upload"},
            )
        return entry

    def _delete_remote(self, entry: Entry) -> None:
        entry_id = entry.id
        deleted = self._invoker.invoke(
            lambda: self._service.delete_entry(entry_id),
            operation="delete",
            entry_id=entry_id,
        )
        if deleted is None:
            logger.debug(f"Entry {entry_id} was already gone remotely")
        self._synchronizer.apply_record(RemoteRecord.tombstone(entry_id))
