"""Path watching subsystem: registry, coverage deduplication and dispatch."""
from pathwatch.watch.filesystem import FilesystemMetadata, LocalFilesystem
from pathwatch.watch.primitive import WatchdogPrimitive, WatchPrimitive
from pathwatch.watch.types import EventKind, RawEvent, Subscriber
from pathwatch.watch.watcher import Watcher

__all__ = [
    "EventKind",
    "FilesystemMetadata",
    "LocalFilesystem",
    "RawEvent",
    "Subscriber",
    "WatchPrimitive",
    "Watcher",
    "WatchdogPrimitive",
]
