"""Pytest configuration and fixtures."""

import queue
import sys
import threading
import time
from collections.abc import Iterator
from pathlib import Path, PurePath

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from pathwatch.config import Settings
from pathwatch.exceptions import PrimitiveError, WatchError
from pathwatch.watch.types import EventKind, RawEvent
from pathwatch.watch.watcher import Watcher

_END = object()


class FakePrimitive:
    """In-memory watch primitive recording add/remove calls."""

    def __init__(self) -> None:
        self.watches: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.rejected: set[str] = set()
        self.closed = False
        self._queue: queue.Queue[object] = queue.Queue()

    def add_watch(self, path: str) -> None:
        self.calls.append(("add", path))
        if path in self.rejected:
            raise WatchError(f"Permission denied: {path}", path)
        self.watches.add(path)

    def remove_watch(self, path: str) -> None:
        self.calls.append(("remove", path))
        if path not in self.watches:
            raise WatchError(f"Path holds no watch: {path}", path)
        self.watches.remove(path)

    def emit(self, path: str, kind: EventKind) -> None:
        self._queue.put(RawEvent(path=path, kind=kind))

    def fail(self, message: str) -> None:
        self._queue.put(PrimitiveError(message))

    def events(self) -> Iterator[RawEvent | PrimitiveError]:
        while True:
            item = self._queue.get()
            if item is _END:
                return
            yield item  # type: ignore[misc]

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put(_END)


class FakeFilesystem:
    """Filesystem metadata over a fixed set of files and directories."""

    def __init__(self, directories: set[str], files: set[str]) -> None:
        self.directories = directories
        self.files = files

    def is_directory(self, path: str) -> bool:
        return path in self.directories

    def exists(self, path: str) -> bool:
        return path in self.directories or path in self.files


class Recorder:
    """Subscriber that records every callback it receives."""

    def __init__(self, name: str = "recorder") -> None:
        self.name = name
        self.calls: list[tuple[str, str]] = []
        self.received = threading.Event()

    def _record(self, method: str, path: str) -> None:
        self.calls.append((method, path))
        self.received.set()

    def wait_for(self, method: str, timeout: float = 5.0) -> list[str]:
        """Block until a callback arrives; return the paths it was called with."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            paths = [path for name, path in self.calls if name == method]
            if paths:
                return paths
            time.sleep(0.02)
        return []

    def file_changed(self, path: str) -> None:
        self._record("file_changed", path)

    def file_created(self, path: str) -> None:
        self._record("file_created", path)

    def file_removed(self, path: str) -> None:
        self._record("file_removed", path)

    def file_renamed(self, path: str) -> None:
        self._record("file_renamed", path)

    def __repr__(self) -> str:
        return f"Recorder({self.name!r})"


def p(path: str) -> str:
    """Render a slash-separated test path for the host platform."""
    return str(PurePath(path))


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        debug=True,
        event_queue_size=64,
        observer_timeout=0.1,
        shutdown_timeout=2.0,
    )


@pytest.fixture
def primitive() -> FakePrimitive:
    return FakePrimitive()


@pytest.fixture
def filesystem() -> FakeFilesystem:
    """Tree with directories a, a/sub and b plus a few files."""
    return FakeFilesystem(
        directories={p("a"), p("a/sub"), p("b")},
        files={
            p("a/x.txt"),
            p("a/y.txt"),
            p("a/sub/z.txt"),
            p("b/w.txt"),
        },
    )


@pytest.fixture
def watcher(primitive: FakePrimitive, filesystem: FakeFilesystem) -> Iterator[Watcher]:
    """Create a watcher over the fake primitive and filesystem."""
    w = Watcher(primitive, filesystem=filesystem, shutdown_timeout=2.0)
    yield w
    w.close()
