"""Low-level watch primitive backed by a watchdog observer.

The primitive only knows about individual paths: it registers and drops
OS watches and exposes a single stream of raw, path-addressed events. It
has no notion of subscribers or of one watch covering another.
"""

import os
import queue
import threading
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol

import structlog
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from pathwatch.exceptions import PrimitiveError, WatchError
from pathwatch.watch.types import EventKind, RawEvent

logger = structlog.get_logger()

EVENT_KINDS: dict[str, EventKind] = {
    EVENT_TYPE_CREATED: EventKind.CREATE,
    EVENT_TYPE_MODIFIED: EventKind.WRITE,
    EVENT_TYPE_DELETED: EventKind.REMOVE,
}

_CLOSED = object()


class WatchPrimitive(Protocol):
    """Interface of the OS change-notification primitive."""

    def add_watch(self, path: str) -> None: ...

    def remove_watch(self, path: str) -> None: ...

    def events(self) -> Iterator[RawEvent | PrimitiveError]: ...

    def close(self) -> None: ...


def _decode(path: str | bytes) -> str:
    if isinstance(path, str):
        return os.path.normpath(path)
    return os.path.normpath(bytes(path).decode("utf-8", errors="replace"))


def translate_event(event: FileSystemEvent) -> list[RawEvent]:
    """Translate a watchdog event into raw events.

    A move becomes a rename of the source path followed by a create of
    the destination path. Directory modifications only echo changes to
    the directory's children and are dropped.

    Args:
        event: Watchdog filesystem event.

    Returns:
        Raw events in delivery order, empty for event types that are not
        change notifications (opened, closed, directory modified).
    """
    if event.is_directory and event.event_type == EVENT_TYPE_MODIFIED:
        return []

    src_path = _decode(event.src_path)

    if event.event_type == EVENT_TYPE_MOVED:
        raw = [RawEvent(path=src_path, kind=EventKind.RENAME)]
        if event.dest_path:
            raw.append(RawEvent(path=_decode(event.dest_path), kind=EventKind.CREATE))
        return raw

    kind = EVENT_KINDS.get(event.event_type)
    if kind is None:
        return []
    return [RawEvent(path=src_path, kind=kind)]


class TranslatingHandler(FileSystemEventHandler):
    """Watchdog handler that forwards translated events to the primitive."""

    def __init__(self, primitive: "WatchdogPrimitive") -> None:
        super().__init__()
        self._primitive = primitive

    def forward(self, raw: RawEvent) -> bool:
        return True

    def on_any_event(self, event: FileSystemEvent) -> None:
        for raw in translate_event(event):
            if self.forward(raw):
                self._primitive.publish(raw)


class FileSelectionHandler(TranslatingHandler):
    """Forwards events for selected files of one directory.

    Files are watched through their parent directory so that renames and
    re-creations of the file itself are still reported.

    Attributes:
        files: Watched file paths inside the directory.
    """

    def __init__(self, primitive: "WatchdogPrimitive") -> None:
        super().__init__(primitive)
        self.files: set[str] = set()

    def forward(self, raw: RawEvent) -> bool:
        return raw.path in self.files


class WatchdogPrimitive:
    """Watch primitive built on a watchdog observer.

    Directories are scheduled recursively so their watch reports changes
    anywhere below them. Files are served by a non-recursive schedule of
    their parent directory, shared by every watched file in it. Events
    from the observer thread are buffered in a bounded queue; when the
    buffer is full new events are dropped and a single PrimitiveError is
    posted for the overflow.

    Attributes:
        queue_size: Maximum number of buffered raw events.
    """

    def __init__(
        self,
        queue_size: int = 4096,
        observer_timeout: float = 1.0,
    ) -> None:
        """Initialize and start the underlying observer.

        Args:
            queue_size: Maximum raw events buffered for the consumer.
            observer_timeout: Polling timeout of the watchdog observer.
        """
        self.queue_size = queue_size
        self._queue: queue.Queue[object] = queue.Queue()
        # observer calls happen under _watch_lock only; the observer thread
        # takes _queue_lock while holding its own lock
        self._watch_lock = threading.Lock()
        self._queue_lock = threading.Lock()
        self._dir_watches: dict[str, ObservedWatch] = {}
        self._file_parents: dict[str, str] = {}
        self._parent_watches: dict[str, tuple[ObservedWatch, FileSelectionHandler]] = {}
        self._handler = TranslatingHandler(self)
        self._dropped_count = 0
        self._overflowing = False
        self._consumed = False
        self._closed = False

        self._observer = Observer(timeout=observer_timeout)
        self._observer.start()

    @property
    def dropped_events(self) -> int:
        """Total number of raw events dropped due to buffer overflow."""
        return self._dropped_count

    @property
    def watched_paths(self) -> list[str]:
        """Paths currently watched."""
        with self._watch_lock:
            return [*self._dir_watches, *self._file_parents]

    def add_watch(self, path: str) -> None:
        """Register an OS watch for a path.

        Args:
            path: File or directory to watch.

        Raises:
            WatchError: If the path is missing or the OS rejects the watch.
        """
        if self._closed:
            raise WatchError("Watch primitive is closed", path)
        target = Path(path)
        if not target.exists():
            raise WatchError(f"Path does not exist: {path}", path)

        with self._watch_lock:
            if path in self._dir_watches or path in self._file_parents:
                return
            try:
                if target.is_dir():
                    watch = self._observer.schedule(self._handler, path, recursive=True)
                    self._dir_watches[path] = watch
                else:
                    self._add_file_watch(path)
            except OSError as e:
                raise WatchError(f"Could not watch {path}: {e.strerror or e}", path) from e
        logger.debug("primitive_watch_added", path=path)

    def _add_file_watch(self, path: str) -> None:
        parent = os.path.dirname(path) or os.curdir
        entry = self._parent_watches.get(parent)
        if entry is None:
            handler = FileSelectionHandler(self)
            handler.files.add(path)
            watch = self._observer.schedule(handler, parent, recursive=False)
            self._parent_watches[parent] = (watch, handler)
        else:
            entry[1].files.add(path)
        self._file_parents[path] = parent

    def remove_watch(self, path: str) -> None:
        """Drop the OS watch for a path.

        Raises:
            WatchError: If the path holds no watch or the OS refused removal.
        """
        with self._watch_lock:
            watch = self._dir_watches.pop(path, None)
            parent = self._file_parents.pop(path, None)
            if watch is None and parent is None:
                raise WatchError(f"Path holds no watch: {path}", path)

            if parent is not None:
                watch, handler = self._parent_watches[parent]
                handler.files.discard(path)
                if handler.files:
                    watch = None
                else:
                    del self._parent_watches[parent]

            if watch is not None:
                try:
                    self._observer.unschedule(watch)
                except (KeyError, OSError) as e:
                    raise WatchError(f"Could not unwatch {path}: {e}", path) from e
        logger.debug("primitive_watch_removed", path=path)

    def publish(self, item: RawEvent | PrimitiveError) -> None:
        """Buffer an item for the consumer, dropping it on overflow."""
        with self._queue_lock:
            if self._closed:
                return
            if isinstance(item, RawEvent) and self._queue.qsize() >= self.queue_size:
                self._dropped_count += 1
                if not self._overflowing:
                    self._overflowing = True
                    self._queue.put(PrimitiveError("Event queue overflow, dropping events"))
                return
            self._overflowing = False
            self._queue.put(item)

    def events(self) -> Iterator[RawEvent | PrimitiveError]:
        """Stream buffered items until the primitive is closed.

        The stream can be consumed only once.

        Yields:
            Raw events and in-band primitive errors.

        Raises:
            RuntimeError: If the stream was already consumed.
        """
        if self._consumed:
            raise RuntimeError("Event stream already consumed")
        self._consumed = True
        return self._drain()

    def _drain(self) -> Iterator[RawEvent | PrimitiveError]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]

    def close(self) -> None:
        """Stop the observer and end the event stream. Idempotent."""
        with self._queue_lock:
            if self._closed:
                return
            self._closed = True

        self._observer.stop()
        self._observer.join(timeout=5.0)
        with self._watch_lock:
            self._dir_watches.clear()
            self._file_parents.clear()
            self._parent_watches.clear()
        self._queue.put(_CLOSED)
        logger.debug("primitive_closed", dropped_events=self._dropped_count)
