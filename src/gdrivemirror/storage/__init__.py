"""Snapshot persistence exports for gdrivemirror."""

from __future__ import annotations

from .snapshot_store import Snapshot, SnapshotStore, decode_graph, encode_graph

__all__ = ["Snapshot", "SnapshotStore", "encode_graph", "decode_graph"]
