"""Client-side synchronization of the shared document.

A LocalState holds the tracked collections in memory; a SyncManager pulls
the document from a BlobStore on an interval and pushes debounced snapshots
of local changes back.
"""

from .manager import SyncManager, SyncPhase
from .state import LocalState, StateChange
from .transport import (
    BlobStore,
    FileBlobStore,
    HttpBlobStore,
    MemoryBlobStore,
    TransportError,
)

__all__ = [
    "BlobStore",
    "FileBlobStore",
    "HttpBlobStore",
    "LocalState",
    "MemoryBlobStore",
    "StateChange",
    "SyncManager",
    "SyncPhase",
    "TransportError",
]
