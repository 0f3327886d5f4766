"""
Shared fixtures.

Stores used in tests are the in-memory tree, optionally wrapped to
record calls or to fail on demand. No test touches the network.
"""

from typing import Any, Mapping, Optional

import pytest

from ledger_sync.reconcile import ChangeAnnouncer, DefaultsPolicy
from ledger_sync.services.notify import RecordingNotifier
from ledger_sync.services.storage import (
    InMemoryTreeStore,
    RemoteReadError,
    RemoteWriteError,
)


DEFAULT_CATEGORIES = ["Groceries", "Housing", "Utilities", "Other"]
DEFAULT_SOURCE_TYPES = ["Credit Card", "Cash"]


class SpyStore(InMemoryTreeStore):
    """
    In-memory store that records every call and can be told to fail.

    ``fail_reads`` / ``fail_writes`` hold the message to raise with.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        super().__init__(initial)
        self.calls: list[tuple] = []
        self.fail_reads: Optional[str] = None
        self.fail_writes: Optional[str] = None

    def _check_write(self) -> None:
        if self.fail_writes is not None:
            raise RemoteWriteError(self.fail_writes)

    async def read(self, path):
        self.calls.append(("read", path))
        if self.fail_reads is not None:
            raise RemoteReadError(self.fail_reads)
        return await super().read(path)

    async def set(self, path, value):
        self.calls.append(("set", path, value))
        self._check_write()
        await super().set(path, value)

    async def update(self, path, fields):
        self.calls.append(("update", path, dict(fields)))
        self._check_write()
        await super().update(path, fields)

    async def push(self, path, value):
        self.calls.append(("push", path, value))
        self._check_write()
        return await super().push(path, value)

    async def remove(self, path, key):
        self.calls.append(("remove", path, key))
        self._check_write()
        await super().remove(path, key)

    async def multi_update(self, updates):
        self.calls.append(("multi_update", dict(updates)))
        self._check_write()
        await super().multi_update(updates)

    def calls_named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def policy() -> DefaultsPolicy:
    return DefaultsPolicy(DEFAULT_CATEGORIES, DEFAULT_SOURCE_TYPES)


@pytest.fixture
def store() -> SpyStore:
    return SpyStore()


@pytest.fixture
def make_store():
    """Factory for a spy store seeded with a raw tree."""
    return SpyStore


@pytest.fixture
def announcer() -> ChangeAnnouncer:
    return ChangeAnnouncer()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def events(announcer):
    """Every event published on the announcer fixture, in order."""
    received = []
    announcer.subscribe(received.append)
    return received
