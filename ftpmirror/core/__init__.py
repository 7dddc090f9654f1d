"""Core functionality"""
from .entries import EntryKind, RemoteEntry
from .transport import TransportSession
from .sync_engine import SyncEngine, SyncPaths, decide_download
from .controller import Phase, StatusSnapshot, SyncController

__all__ = [
    "EntryKind", "RemoteEntry",
    "TransportSession",
    "SyncEngine", "SyncPaths", "decide_download",
    "Phase", "StatusSnapshot", "SyncController",
]
