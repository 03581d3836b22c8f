"""Reconciliation of flat remote records into the entry graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

from gdrivemirror.errors import SnapshotError
from gdrivemirror.graph import EntryGraph, would_create_cycle
from gdrivemirror.models import (
    Entry,
    File,
    Folder,
    RemoteRecord,
    SyncReport,
    SyncState,
    entry_from_record,
)
from gdrivemirror.retry import RetryingInvoker
from gdrivemirror.service import RemoteStorageService
from gdrivemirror.storage import SnapshotStore
from gdrivemirror.util.mime import DEFAULT_MIME
from gdrivemirror.util.time import now_utc

from .record_stream import ChangeFeedStream, FullListingStream, RecordStream

logger = logging.getLogger(__name__)


class GraphListener(Protocol):
    """Observer of entries entering and leaving the graph."""

    def entry_loaded(self, entry: Entry) -> None: ...

    def entry_removed(self, entry: Entry) -> None: ...


@dataclass(slots=True)
class _Pass:
    report: SyncReport
    dangling: dict[str, str] = field(default_factory=dict)
    deletions: list[Entry] = field(default_factory=list)


class EntrySynchronizer:
    """
    Fold record streams into an EntryGraph.

    Without a continuation token the pass is a full listing; afterwards only
    the change feed since the last token is replayed. Records may arrive in
    any order relative to the hierarchy: entries whose parent is not known
    yet wait in a dangling table until the stream is exhausted, and deletions
    are deferred until then as well.

    Reconciliation never raises. Failures come from fetching (propagated from
    the invoker) or from persisting (logged, retried on the next pass).
    """

    def __init__(
        self,
        graph: EntryGraph,
        invoker: RetryingInvoker,
        service: RemoteStorageService,
        *,
        store: Optional[SnapshotStore] = None,
        state: Optional[SyncState] = None,
        listeners: Iterable[GraphListener] = (),
    ) -> None:
        self._graph = graph
        self._invoker = invoker
        self._service = service
        self._store = store
        self._state = state or SyncState()
        self._listeners: list[GraphListener] = list(listeners)
        self._persist_pending = False
        self._current: Optional[_Pass] = None

    @property
    def graph(self) -> EntryGraph:
        return self._graph

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def persist_pending(self) -> bool:
        return self._persist_pending

    def add_listener(self, listener: GraphListener) -> None:
        self._listeners.append(listener)

    def reset(self) -> None:
        """Forget the continuation token; the next pass is a full listing."""
        self._state.continuation_token = None

    def restore(self, token: str, graph: EntryGraph) -> None:
        """Continue from a persisted (token, graph) pair."""
        self._graph = graph
        self._state.continuation_token = token
        self._persist_pending = False

    # ----------------------------
    # Passes
    # ----------------------------
    def synchronize(self) -> SyncReport:
        previous = self._state.continuation_token
        target = self._graph
        stream: RecordStream
        if previous is None:
            # A full listing is built aside and only replaces the graph once complete.
            mode = "full"
            self._graph = EntryGraph()
            stream = FullListingStream(self._invoker, self._service)
        else:
            mode = "incremental"
            stream = ChangeFeedStream(self._invoker, self._service, previous)

        ctx = _Pass(report=SyncReport(mode=mode, previous_token=previous, token=None))
        self._current = ctx
        try:
            for record in stream:
                ctx.report.records += 1
                self._apply(record, ctx)
        finally:
            # Settle even when fetching failed, so the graph stays consistent
            # with what was applied; the token is left untouched.
            self._current = None
            self._resolve_dangling(ctx)
            self._run_deletions(ctx)
            staged, self._graph = self._graph, target

        if staged is not target:
            target.replace_with(staged)

        token = stream.token
        ctx.report.token = token
        self._state.continuation_token = token
        self._state.last_synced_at = now_utc()

        if ctx.report.token_advanced or self._persist_pending:
            ctx.report.persisted = self._persist(token)

        report = ctx.report
        logger.info(
            f"{mode} sync: {report.records} record(s), {report.created} created, "
            f"{report.updated} updated, {report.deleted} deleted, "
            f"{len(report.unreachable)} unreachable, token {previous} -> {token}"
        )
        return report

    def apply_record(self, record: RemoteRecord) -> Optional[Entry]:
        """
        Reconcile a single authoritative record (e.g. a mutation response).

        Inside a running pass the record joins that pass; otherwise it forms
        a pass of its own, so dangling parents and deletions are settled
        before returning.
        """
        if self._current is not None:
            return self._apply(record, self._current)

        token = self._state.continuation_token
        ctx = _Pass(report=SyncReport(mode="incremental", previous_token=token, token=token))
        entry = self._apply(record, ctx)
        self._resolve_dangling(ctx)
        self._run_deletions(ctx)
        return entry

    # ----------------------------
    # Per-record reconciliation
    # ----------------------------
    def _apply(self, record: RemoteRecord, ctx: _Pass) -> Optional[Entry]:
        if not record.id:
            logger.warning("Skipping record without id")
            ctx.report.ignored += 1
            return None

        entry = self._graph.find(record.id)
        if entry is not None:
            return self._apply_known(entry, record, ctx)
        return self._apply_new(record, ctx)

    def _apply_known(self, entry: Entry, record: RemoteRecord, ctx: _Pass) -> Optional[Entry]:
        graph = self._graph

        if record.deleted or record.trashed:
            if entry.id == graph.root_id:
                logger.warning(f"Ignoring deletion of the root folder {entry.id}")
                ctx.report.ignored += 1
                return None
            logger.debug(f"Removing {entry.id} ({entry.name})")
            graph.remove(entry.id)
            ctx.dangling.pop(entry.id, None)
            ctx.deletions.append(entry)
            return None

        if entry.id != graph.root_id:
            self._reparent(entry, record.parent_id, ctx)

        if record.name and record.name != entry.name:
            logger.debug(f"Renaming {entry.id}: {entry.name} -> {record.name}")
            graph.rename(entry.id, record.name)
            ctx.report.renamed += 1

        entry.properties = dict(record.properties)
        if record.created_time is not None:
            entry.created_time = record.created_time
        if record.modified_time is not None:
            entry.modified_time = record.modified_time
        if isinstance(entry, File):
            entry.size = record.size or 0
            entry.md5_checksum = record.md5_checksum
            entry.mime_type = record.mime_type or DEFAULT_MIME

        ctx.report.updated += 1
        return entry

    def _reparent(self, entry: Entry, parent_id: Optional[str], ctx: _Pass) -> None:
        graph = self._graph

        if parent_id is None:
            if entry.parent_id is not None or entry.id not in graph.unreachable_ids:
                logger.warning(f"Entry {entry.id} ({entry.name}) lost its parent; detaching")
                graph.mark_unreachable(entry.id)
                entry.parent_id = None
                ctx.dangling.pop(entry.id, None)
                ctx.report.unreachable.append(entry.id)
            return

        if parent_id == entry.parent_id and graph.is_attached(entry.id):
            return

        parent = graph.find(parent_id)
        if parent is None:
            graph.detach(entry.id)
            entry.parent_id = parent_id
            ctx.dangling[entry.id] = parent_id
            ctx.report.moved += 1
            return

        if not isinstance(parent, Folder):
            logger.warning(f"Not moving {entry.id}: new parent {parent_id} is not a folder")
            return

        if would_create_cycle(graph, entry.id, parent_id):
            logger.warning(f"Not moving {entry.id} below {parent_id}: would create a cycle")
            return

        logger.debug(f"Moving {entry.id} ({entry.name}) below {parent_id}")
        graph.attach(entry.id, parent_id)
        ctx.dangling.pop(entry.id, None)
        ctx.report.moved += 1

    def _apply_new(self, record: RemoteRecord, ctx: _Pass) -> Optional[Entry]:
        graph = self._graph

        if record.deleted or record.trashed:
            logger.debug(f"Ignoring tombstone for unknown entry {record.id}")
            ctx.report.ignored += 1
            return None

        entry = entry_from_record(record)

        if record.parent_id is None:
            if isinstance(entry, Folder) and graph.root_id in (None, record.id):
                logger.debug(f"Registering root {record.id} ({record.name})")
                graph.set_root(entry)
            else:
                logger.warning(f"Parentless record {record.id} ({record.name}) is not the root")
                graph.add(entry)
                graph.mark_unreachable(entry.id)
                ctx.report.unreachable.append(entry.id)
        else:
            graph.add(entry)
            if isinstance(graph.find(record.parent_id), Folder):
                graph.attach(entry.id, record.parent_id)
            else:
                ctx.dangling[entry.id] = record.parent_id

        ctx.report.created += 1
        for listener in self._listeners:
            listener.entry_loaded(entry)
        return entry

    # ----------------------------
    # End of pass
    # ----------------------------
    def _resolve_dangling(self, ctx: _Pass) -> None:
        graph = self._graph
        for entry_id, parent_id in ctx.dangling.items():
            if not graph.has(entry_id):
                continue

            parent = graph.find(parent_id)
            if isinstance(parent, Folder) and not would_create_cycle(graph, entry_id, parent_id):
                graph.attach(entry_id, parent_id)
                continue

            logger.warning(f"Entry {entry_id} is unreachable: parent {parent_id} was never observed")
            graph.mark_unreachable(entry_id)
            ctx.report.unreachable.append(entry_id)
        ctx.dangling.clear()

    def _run_deletions(self, ctx: _Pass) -> None:
        graph = self._graph
        for removed in ctx.deletions:
            if graph.has(removed.id):
                # Re-created in this pass: hand the old children to the new entry.
                if isinstance(removed, Folder) and isinstance(graph.get(removed.id), Folder):
                    for child_id in removed.child_ids:
                        child = graph.find(child_id)
                        if child is not None and child.parent_id == removed.id:
                            graph.attach(child_id, removed.id)
                continue

            purged: list[Entry] = [removed]
            if isinstance(removed, Folder):
                for child_id in list(removed.child_ids):
                    child = graph.find(child_id)
                    if child is not None and child.parent_id == removed.id:
                        purged.extend(graph.purge(child_id))

            ctx.report.deleted += len(purged)
            for entry in purged:
                for listener in self._listeners:
                    listener.entry_removed(entry)
        ctx.deletions.clear()

    def _persist(self, token: str) -> bool:
        if self._store is None:
            return False
        try:
            self._store.save(token, self._graph)
        except (OSError, SnapshotError) as exc:
            logger.warning(f"Failed to persist snapshot at token {token}: {exc}")
            self._persist_pending = True
            return False
        self._persist_pending = False
        return True
