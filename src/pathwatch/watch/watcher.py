"""Multiplexing path watcher with directory coverage deduplication.

The watcher lets any number of subscribers watch files and directories
while keeping the set of OS-level watches minimal: once a directory is
watched, watches on paths below it are dropped and the directory's
watch covers them. Removing the directory's watch later gives those
paths their own watches back.

A single dispatcher thread consumes the primitive's event stream and
calls subscribers synchronously, so callbacks must return promptly.
"""

import os
import threading
from types import TracebackType

import structlog

from pathwatch.exceptions import NotWatchedError, PrimitiveError, WatchError
from pathwatch.watch.coverage import CoverageTracker, descendants
from pathwatch.watch.dispatcher import deliver, resolve
from pathwatch.watch.filesystem import FilesystemMetadata, LocalFilesystem
from pathwatch.watch.primitive import WatchPrimitive
from pathwatch.watch.registry import WatchRegistry
from pathwatch.watch.types import Subscriber

logger = structlog.get_logger()


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a path for use as a registry key.

    Raises:
        ValueError: If the path is empty.
    """
    raw = os.fspath(path)
    if not raw:
        raise ValueError("Path must be a non-empty string")
    return os.path.normpath(raw)


class Watcher:
    """Path-level change notification multiplexer.

    Registry, active watches and covering directories are one block of
    state guarded by a single lock. Each mutation is applied together with
    the primitive call that backs it while the lock is held.

    Attributes:
        shutdown_timeout: Seconds close() waits for the dispatcher thread.
    """

    def __init__(
        self,
        primitive: WatchPrimitive,
        filesystem: FilesystemMetadata | None = None,
        shutdown_timeout: float = 5.0,
    ) -> None:
        """Initialize a watcher with empty state.

        Args:
            primitive: OS watch primitive supplying raw events.
            filesystem: Metadata collaborator, local filesystem by default.
            shutdown_timeout: Seconds close() waits for the dispatcher.
        """
        self.shutdown_timeout = shutdown_timeout
        self._primitive = primitive
        self._filesystem = filesystem or LocalFilesystem()
        self._registry = WatchRegistry()
        self._coverage = CoverageTracker()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._closed = False

    @property
    def watched(self) -> dict[str, tuple[Subscriber, ...]]:
        """Snapshot of watched paths and their subscribers."""
        with self._lock:
            return self._registry.snapshot()

    @property
    def active_watches(self) -> frozenset[str]:
        """Paths currently holding an OS-level watch."""
        with self._lock:
            return self._coverage.active

    @property
    def covering_directories(self) -> frozenset[str]:
        """Directories whose watch covers paths below them."""
        with self._lock:
            return self._coverage.covering

    def subscribers_of(self, path: str | os.PathLike[str]) -> list[Subscriber]:
        """Subscribers registered for a path, in registration order."""
        key = normalize_path(path)
        with self._lock:
            return self._registry.subscribers_of(key)

    def watch(self, path: str | os.PathLike[str], subscriber: Subscriber) -> None:
        """Notify a subscriber about changes to a path.

        Watching a path that is already covered, by its own watch or by a
        watched ancestor directory, only registers the subscriber. Watching
        a directory drops the OS watches of everything below it.

        Args:
            path: Existing file or directory.
            subscriber: Object implementing the subscriber callbacks.

        Raises:
            TypeError: If subscriber lacks the subscriber callbacks.
            WatchError: If the path is missing or cannot be watched.
        """
        if not isinstance(subscriber, Subscriber):
            raise TypeError(
                f"{type(subscriber).__name__} does not implement the subscriber callbacks"
            )
        key = normalize_path(path)
        if not self._filesystem.exists(key):
            raise WatchError(f"Path does not exist: {key}", key)

        with self._lock:
            self._registry.add(key, subscriber)
            if self._coverage.is_covered(key):
                logger.debug("watch_already_covered", path=key)
                return

            try:
                self._add_watch(key)
            except WatchError:
                self._registry.remove(key, subscriber)
                raise

            if self._filesystem.is_directory(key):
                self._flush_dir(key)

    def unwatch(
        self,
        path: str | os.PathLike[str],
        subscriber: Subscriber | None = None,
    ) -> None:
        """Stop notifying a subscriber, or every subscriber, about a path.

        Removing the last subscriber tears the path down: paths below a
        covering directory get their own watches back, then the path's own
        watch is dropped. An unknown subscriber for a watched path is
        ignored.

        Args:
            path: Watched path.
            subscriber: Subscriber to remove, or None to remove all.

        Raises:
            NotWatchedError: If the path has no subscribers.
        """
        key = normalize_path(path)
        with self._lock:
            if key not in self._registry:
                raise NotWatchedError(key)

            if subscriber is not None:
                if not self._registry.remove(key, subscriber):
                    logger.debug("unwatch_unknown_subscriber", path=key)
                    return
                if key in self._registry:
                    return

            self._teardown(key)

    def _teardown(self, path: str) -> None:
        if self._coverage.is_covering(path):
            self._restore_dir(path)
        if self._coverage.is_active(path):
            self._remove_watch(path)
        self._registry.remove(path)
        logger.info("path_unwatched", path=path)

    def _add_watch(self, path: str) -> None:
        self._primitive.add_watch(path)
        self._coverage.activate(path)
        logger.info("watch_added", path=path)

    def _remove_watch(self, path: str) -> None:
        """Drop a path's OS watch, keeping its subscribers."""
        self._coverage.deactivate(path)
        try:
            self._primitive.remove_watch(path)
        except WatchError as e:
            logger.warning("watch_remove_failed", path=path, error=str(e))
            return
        logger.info("watch_removed", path=path)

    def _flush_dir(self, directory: str) -> None:
        """Hand the watches of everything below a directory to the directory.

        Demoted subdirectories stop covering; the directory covers for them.
        """
        demoted = self._coverage.active_descendants(directory)
        for path in demoted:
            self._remove_watch(path)
            self._coverage.unmark_covering(path)
        self._coverage.mark_covering(directory)
        logger.debug("directory_flushed", path=directory, demoted=demoted)

    def _restore_dir(self, directory: str) -> None:
        """Give watched paths below a directory their own watches back.

        The directory keeps its own watch. Paths are restored shallowest
        first so a restored subdirectory covers its own descendants. A path
        that can no longer be watched is dropped from the registry.
        """
        self._coverage.unmark_covering(directory)
        restored: list[str] = []
        for path in descendants(self._registry.paths(), directory):
            if self._coverage.is_covered(path):
                continue
            try:
                self._add_watch(path)
            except WatchError as e:
                logger.warning("watch_restore_failed", path=path, error=str(e))
                self._registry.remove(path)
                continue
            if self._filesystem.is_directory(path):
                self._flush_dir(path)
            restored.append(path)
        logger.debug("directory_restored", path=directory, restored=restored)

    def observe(self) -> None:
        """Consume raw events and notify subscribers until the stream ends.

        Primitive errors are logged and never stop the loop.
        """
        logger.info("dispatcher_started")
        for item in self._primitive.events():
            if isinstance(item, PrimitiveError):
                logger.error("primitive_error", error=str(item))
                continue

            with self._lock:
                notification = resolve(item, self._registry, self._coverage)

            if notification is None:
                logger.debug("event_unroutable", path=item.path, kind=item.kind.value)
                continue

            deliver(notification)
        logger.info("dispatcher_stopped")

    def start(self) -> None:
        """Run the dispatcher on a background thread.

        Raises:
            RuntimeError: If already started or closed.
        """
        if self._closed:
            raise RuntimeError("Watcher is closed")
        if self._thread is not None:
            raise RuntimeError("Watcher is already running")

        self._thread = threading.Thread(
            target=self.observe,
            name="pathwatch-dispatcher",
            daemon=True,
        )
        self._thread.start()

    def is_running(self) -> bool:
        """Check if the dispatcher thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def close(self) -> None:
        """Close the primitive, stop the dispatcher and drop all state."""
        if self._closed:
            return
        self._closed = True
        self._primitive.close()

        if self._thread is not None:
            self._thread.join(timeout=self.shutdown_timeout)
            if self._thread.is_alive():
                logger.warning("dispatcher_join_timeout", timeout_seconds=self.shutdown_timeout)

        with self._lock:
            self._registry.clear()
            self._coverage.clear()
        logger.info("watcher_closed")

    def __enter__(self) -> "Watcher":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
