"""In-memory arena of mirrored entries, keyed by remote id."""

from __future__ import annotations

from collections import deque
from typing import Iterator, Optional

from gdrivemirror.errors import InvalidStateError
from gdrivemirror.models import Entry, File, Folder

PATH_SEPARATOR = "/"


class EntryGraph:
    """
    Arena of Folder/File entries.

    Indexes:
        - entries by id (the arena itself)
        - children per folder (``Folder.child_ids``)
        - unreachable ids (entries whose parent was never observed)

    Folders hold child ids, never child objects; parent lookups always go
    through the arena. Paths are computed lazily and cached until the next
    structural change.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Entry] = {}
        self._root_id: Optional[str] = None
        self._unreachable: set[str] = set()
        self._path_cache: dict[str, str] = {}

    # ----------------------------
    # Query helpers
    # ----------------------------
    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __iter__(self) -> Iterator[Entry]:
        return iter(list(self._entries.values()))

    def has(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def get(self, entry_id: str) -> Entry:
        return self._entries[entry_id]

    def find(self, entry_id: str) -> Optional[Entry]:
        return self._entries.get(entry_id)

    @property
    def root_id(self) -> Optional[str]:
        return self._root_id

    @property
    def root(self) -> Folder:
        if self._root_id is None:
            raise InvalidStateError("Graph has no root yet. Run a synchronization first.")
        root = self._entries[self._root_id]
        if not isinstance(root, Folder):
            raise InvalidStateError("Root entry is not a folder", details={"entry_id": root.id})
        return root

    @property
    def unreachable_ids(self) -> frozenset[str]:
        return frozenset(self._unreachable)

    def is_reachable(self, entry_id: str) -> bool:
        """True if the parent chain of entry_id terminates at the root."""
        seen: set[str] = set()
        cur: Optional[str] = entry_id
        while cur is not None:
            if cur == self._root_id:
                return True
            if cur in seen or cur not in self._entries:
                return False
            seen.add(cur)
            cur = self._entries[cur].parent_id
        return False

    def is_attached(self, entry_id: str) -> bool:
        """True if entry_id is listed among its parent's children."""
        entry = self._entries.get(entry_id)
        if entry is None or entry.parent_id is None:
            return False
        parent = self._entries.get(entry.parent_id)
        return isinstance(parent, Folder) and entry_id in parent.child_ids

    def children(self, folder_id: str) -> list[Entry]:
        folder = self._entries[folder_id]
        if not isinstance(folder, Folder):
            return []
        infos = [self._entries[cid] for cid in folder.child_ids if cid in self._entries]
        infos.sort(key=lambda x: (x.name, x.id))
        return infos

    def child_by_name(self, folder_id: str, name: str) -> Optional[Entry]:
        folder = self._entries.get(folder_id)
        if not isinstance(folder, Folder):
            return None
        for cid in folder.child_ids:
            child = self._entries.get(cid)
            if child is not None and child.name == name:
                return child
        return None

    def descendant_ids(self, folder_id: str) -> list[str]:
        """All ids below folder_id (BFS order, folder itself excluded)."""
        result: list[str] = []
        folder = self._entries.get(folder_id)
        if not isinstance(folder, Folder):
            return result

        q: deque[str] = deque(folder.child_ids)
        visited: set[str] = set()
        while q:
            cur = q.popleft()
            if cur in visited or cur not in self._entries:
                continue
            visited.add(cur)
            result.append(cur)
            entry = self._entries[cur]
            if isinstance(entry, Folder):
                q.extend(entry.child_ids)
        return result

    def size_of(self, entry_id: str) -> int:
        """File size, or the recursive sum of file sizes below a folder."""
        entry = self._entries[entry_id]
        if isinstance(entry, File):
            return entry.size

        total = 0
        for cid in self.descendant_ids(entry_id):
            child = self._entries[cid]
            if isinstance(child, File):
                total += child.size
        return total

    def path(self, entry_id: str) -> Optional[str]:
        """
        Absolute path of an entry ("/" for the root).

        Returns None for entries that are not reachable from the root.
        """
        cached = self._path_cache.get(entry_id)
        if cached is not None:
            return cached

        if entry_id == self._root_id:
            return PATH_SEPARATOR

        names: list[str] = []
        seen: set[str] = set()
        cur: Optional[str] = entry_id
        while cur != self._root_id:
            if cur is None or cur in seen or cur not in self._entries:
                return None
            seen.add(cur)
            entry = self._entries[cur]
            names.append(entry.name)
            cur = entry.parent_id

        path = PATH_SEPARATOR + PATH_SEPARATOR.join(reversed(names))
        self._path_cache[entry_id] = path
        return path

    def resolve_path(self, path: str) -> Optional[Entry]:
        if self._root_id is None:
            return None

        cur: Entry = self._entries[self._root_id]
        for part in path.split(PATH_SEPARATOR):
            if not part:
                continue
            child = self.child_by_name(cur.id, part)
            if child is None:
                return None
            cur = child
        return cur

    # ----------------------------
    # Mutation helpers (keep indexes consistent)
    # ----------------------------
    def set_root(self, folder: Folder) -> None:
        folder.parent_id = None
        self._entries[folder.id] = folder
        self._root_id = folder.id
        self._unreachable.discard(folder.id)
        self._invalidate_paths()

    def add(self, entry: Entry) -> None:
        """Register an entry without linking it to its parent."""
        self._entries[entry.id] = entry

    def attach(self, entry_id: str, parent_id: str) -> None:
        """Detach entry_id from its current parent and link it below parent_id."""
        entry = self._entries[entry_id]
        parent = self._entries[parent_id]
        if not isinstance(parent, Folder):
            raise InvalidStateError(
                "Parent is not a folder",
                details={"entry_id": entry_id, "parent_id": parent_id},
            )

        self.detach(entry_id)
        entry.parent_id = parent_id
        parent.child_ids.add(entry_id)
        self._unreachable.discard(entry_id)
        self._invalidate_paths()

    def detach(self, entry_id: str) -> None:
        """Unlink entry_id from its parent's children; parent_id is kept."""
        entry = self._entries[entry_id]
        if entry.parent_id is not None:
            parent = self._entries.get(entry.parent_id)
            if isinstance(parent, Folder):
                parent.child_ids.discard(entry_id)
        self._invalidate_paths()

    def mark_unreachable(self, entry_id: str) -> None:
        self.detach(entry_id)
        self._unreachable.add(entry_id)

    def rename(self, entry_id: str, new_name: str) -> None:
        entry = self._entries[entry_id]
        if entry.name == new_name:
            return
        entry.name = new_name
        self._invalidate_paths()

    def remove(self, entry_id: str) -> Optional[Entry]:
        """
        Detach entry_id and drop it from the arena.

        A removed folder keeps its ``child_ids``; children stay in the arena
        until purged explicitly (see ``purge``).
        """
        entry = self._entries.get(entry_id)
        if entry is None:
            return None

        self.detach(entry_id)
        self._entries.pop(entry_id, None)
        self._unreachable.discard(entry_id)
        if entry_id == self._root_id:
            self._root_id = None
        return entry

    def purge(self, entry_id: str) -> list[Entry]:
        """Remove entry_id and its whole subtree. Returns removed entries."""
        removed: list[Entry] = []
        ids = [entry_id] + self.descendant_ids(entry_id)
        for eid in ids:
            entry = self.remove(eid)
            if entry is not None:
                removed.append(entry)
        return removed

    def replace_with(self, other: EntryGraph) -> None:
        """Take over the contents of other, leaving other empty."""
        self._entries, other._entries = other._entries, {}
        self._root_id, other._root_id = other._root_id, None
        self._unreachable, other._unreachable = other._unreachable, set()
        self._invalidate_paths()
        other._invalidate_paths()

    def clear(self) -> None:
        self._entries.clear()
        self._root_id = None
        self._unreachable.clear()
        self._invalidate_paths()

    # ----------------------------
    # Internal index maintenance
    # ----------------------------
    def _invalidate_paths(self) -> None:
        self._path_cache.clear()
