"""
In-Memory Tree Store

A PathAddressedStore kept entirely in process memory. Used by the test
suite and by sessions that run without a configured remote database.

It mirrors the behaviour the reconcilers rely on from the remote store:
- values are copied in and out, callers never share structure with the tree
- empty containers disappear, so deleting the last child deletes the parent
- every write builds a new tree and swaps it in at once, so a multi-path
  update is observed by subscribers as one transition
- subscribers only hear about a collection when its children change
"""

import asyncio
import copy
from typing import Any, AsyncIterator, Mapping, Optional

from ledger_sync.audit import get_logger
from ledger_sync.services.storage.interface import (
    ChildSnapshot,
    InvalidPathError,
    PathAddressedStore,
    Snapshot,
)
from ledger_sync.services.storage.paths import join_path, split_path, validate_key
from ledger_sync.services.storage.push_ids import generate_push_id
from ledger_sync.services.storage.tree import assign_path, child_items, get_path


def _clean(value: Any) -> Any:
    """Copy a value, dropping None children and empty containers."""
    if isinstance(value, Mapping):
        cleaned = {}
        for key, child in value.items():
            child = _clean(child)
            if child is not None:
                cleaned[str(key)] = child
        return cleaned or None
    if isinstance(value, (list, tuple)):
        items = [_clean(child) for child in value]
        if all(item is None for item in items):
            return None
        return items
    return copy.deepcopy(value)


class _Listener:
    def __init__(self, segments: list[str]):
        self.segments = segments
        self.queue: asyncio.Queue = asyncio.Queue()
        self.last: Optional[list[tuple[str, Any]]] = None

    def watches(self, written: list[str]) -> bool:
        shorter = min(len(written), len(self.segments))
        return written[:shorter] == self.segments[:shorter]

    def offer(self, children: list[tuple[str, Any]]) -> None:
        if children != self.last:
            self.last = children
            self.queue.put_nowait(children)


class InMemoryTreeStore(PathAddressedStore):
    """Path-addressed tree held in nested dicts."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        # The initial tree is taken verbatim, so tests can seed keyed-object
        # or sparse encodings exactly as the remote store would return them
        self._root: dict = copy.deepcopy(dict(initial)) if initial else {}
        self._listeners: list[_Listener] = []
        self._logger = get_logger(__name__)

    def dump(self) -> dict:
        """Return a copy of the whole tree."""
        return copy.deepcopy(self._root)

    def _write(self, root: dict, segments: list[str], value: Any) -> dict:
        for segment in segments:
            validate_key(segment)
        value = _clean(value)
        if not segments and value is not None and not isinstance(value, dict):
            raise InvalidPathError("The store root can only hold an object")
        return assign_path(root, segments, value) or {}

    def _commit(self, new_root: dict, written: list[list[str]]) -> None:
        self._root = new_root
        for listener in list(self._listeners):
            if any(listener.watches(segments) for segments in written):
                listener.offer(child_items(get_path(self._root, listener.segments)))

    async def read(self, path: str) -> Snapshot:
        await asyncio.sleep(0)
        value = get_path(self._root, split_path(path))
        return Snapshot(path=join_path(path), value=copy.deepcopy(value))

    async def set(self, path: str, value: Any) -> None:
        await self._set(path, value)

    async def _set(self, path: str, value: Any) -> None:
        await asyncio.sleep(0)
        segments = split_path(path)
        self._commit(self._write(self._root, segments, value), [segments])

    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        await self._update(path, fields)

    async def _update(self, path: str, fields: Mapping[str, Any]) -> None:
        await asyncio.sleep(0)
        base = split_path(path)
        new_root = self._root
        written = []
        # All fields are applied to a private tree before anything is visible
        for name, value in fields.items():
            segments = base + split_path(name)
            new_root = self._write(new_root, segments, value)
            written.append(segments)
        if written:
            self._commit(new_root, written)

    async def push(self, path: str, value: Any) -> str:
        key = self.allocate_key(path)
        await self._set(join_path(path, key), value)
        return key

    async def remove(self, path: str, key: str) -> None:
        await self._set(join_path(path, validate_key(key)), None)

    async def multi_update(self, updates: Mapping[str, Any]) -> None:
        await self._update("", updates)
        self._logger.debug("multi_path_update_applied", path_count=len(updates))

    async def subscribe_list(self, path: str) -> AsyncIterator[list[ChildSnapshot]]:
        listener = _Listener(split_path(path))
        self._listeners.append(listener)
        try:
            listener.offer(child_items(get_path(self._root, listener.segments)))
            while True:
                children = await listener.queue.get()
                yield [
                    ChildSnapshot(key=key, value=copy.deepcopy(value))
                    for key, value in children
                ]
        finally:
            self._listeners.remove(listener)

    def allocate_key(self, path: str) -> str:
        return generate_push_id()
