"""
Abstract Path-Addressed Store Interface

DESIGN DECISION: The remote store is modelled as a key-value tree
addressed by slash-delimited paths. Reconcilers only talk to this
interface, which allows us to:
1. Run against Firebase Realtime Database in production
2. Use an in-memory tree for testing and offline sessions
3. Keep reconciliation logic free of transport concerns

The interface is intentionally small - just the primitives the
reconcilers need.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Mapping, Optional

from pydantic import BaseModel, Field


class Snapshot(BaseModel):
    """Value read at a path. ``value`` is None when nothing is stored there."""

    path: str = Field(..., description="Normalized path that was read")
    value: Any = Field(default=None, description="Raw JSON-compatible value")

    @property
    def exists(self) -> bool:
        return self.value is not None


class ChildSnapshot(BaseModel):
    """One child of a list-valued node."""

    key: str
    value: Any = None


class PathAddressedStore(ABC):
    """
    Abstract interface for the remote tree store.

    Any store implementation (Firebase, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def read(self, path: str) -> Snapshot:
        """
        Read the value stored at a path.

        Args:
            path: Slash-delimited path

        Returns:
            Snapshot of the value (``value`` is None if absent)

        Raises:
            RemoteReadError: If the read fails
        """
        pass

    @abstractmethod
    async def set(self, path: str, value: Any) -> None:
        """
        Replace the value at a path. A None value deletes it.

        Raises:
            RemoteWriteError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        """
        Merge a partial map of fields into the node at a path.

        Field names may be relative multi-segment paths. None values
        delete the addressed child.

        Raises:
            RemoteWriteError: If the write fails
        """
        pass

    @abstractmethod
    async def push(self, path: str, value: Any) -> str:
        """
        Append a child under a collection path.

        Returns:
            The generated key of the new child

        Raises:
            RemoteWriteError: If the write fails
        """
        pass

    @abstractmethod
    async def remove(self, path: str, key: str) -> None:
        """
        Delete one child of a collection path.

        Raises:
            RemoteWriteError: If the write fails
        """
        pass

    @abstractmethod
    async def multi_update(self, updates: Mapping[str, Any]) -> None:
        """
        Write several absolute paths as one atomic unit.

        Either every listed path is written or none is.

        Args:
            updates: Mapping of absolute path to new value (None deletes)

        Raises:
            RemoteWriteError: If the write fails
        """
        pass

    @abstractmethod
    def subscribe_list(self, path: str) -> AsyncIterator[list[ChildSnapshot]]:
        """
        Stream the children of a collection path.

        The first emission is the current state, then one emission per
        write touching the collection. Each emission is the full ordered
        list of children.
        """
        pass

    @abstractmethod
    def allocate_key(self, path: str) -> str:
        """
        Allocate a generated key for a collection without writing.

        Used to build multi-path updates that create several children.
        """
        pass


class StorageError(Exception):
    """Base exception for store operations."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RemoteReadError(StorageError):
    """A read was rejected by the store or failed in transit."""
    pass


class RemoteWriteError(StorageError):
    """A write was rejected by the store or failed in transit."""
    pass


class InvalidPathError(StorageError):
    """A path or key cannot be addressed in the store."""
    pass


class StoreConnectionError(StorageError):
    """Could not connect to the store backend."""
    pass
