"""
Storage Services Package

Provides the abstract path-addressed store interface and its
implementations. Firebase Realtime Database is the remote backend; the
in-memory tree backs tests and offline sessions.
"""

from ledger_sync.services.storage.interface import (
    ChildSnapshot,
    InvalidPathError,
    PathAddressedStore,
    RemoteReadError,
    RemoteWriteError,
    Snapshot,
    StorageError,
    StoreConnectionError,
)
from ledger_sync.services.storage.memory import InMemoryTreeStore
from ledger_sync.services.storage.firebase_rest import (
    FirebaseRestClient,
    FirebaseTreeStore,
)

__all__ = [
    # Interface
    "ChildSnapshot",
    "PathAddressedStore",
    "Snapshot",
    # Exceptions
    "InvalidPathError",
    "RemoteReadError",
    "RemoteWriteError",
    "StorageError",
    "StoreConnectionError",
    # Implementations
    "FirebaseRestClient",
    "FirebaseTreeStore",
    "InMemoryTreeStore",
]
