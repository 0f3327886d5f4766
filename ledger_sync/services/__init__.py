"""Services package."""

from ledger_sync.services.auth import (
    AuthError,
    AuthProvider,
    MissingUserError,
    NotSignedInError,
    SessionAuthProvider,
    require_user_id,
)
from ledger_sync.services.notify import (
    LogNotifier,
    Notifier,
    RecordingNotifier,
)
from ledger_sync.services.storage import (
    ChildSnapshot,
    FirebaseRestClient,
    FirebaseTreeStore,
    InMemoryTreeStore,
    InvalidPathError,
    PathAddressedStore,
    RemoteReadError,
    RemoteWriteError,
    Snapshot,
    StorageError,
    StoreConnectionError,
)

__all__ = [
    # Identity
    "AuthError",
    "AuthProvider",
    "MissingUserError",
    "NotSignedInError",
    "SessionAuthProvider",
    "require_user_id",
    # Notifications
    "LogNotifier",
    "Notifier",
    "RecordingNotifier",
    # Storage
    "ChildSnapshot",
    "FirebaseRestClient",
    "FirebaseTreeStore",
    "InMemoryTreeStore",
    "InvalidPathError",
    "PathAddressedStore",
    "RemoteReadError",
    "RemoteWriteError",
    "Snapshot",
    "StorageError",
    "StoreConnectionError",
]
