"""Error taxonomy for the path watcher."""


class PathWatchError(Exception):
    """Base class for all watcher errors."""


class WatchError(PathWatchError):
    """Raised when a low-level watch cannot be established for a path."""

    def __init__(self, message: str, path: str) -> None:
        """Initialize watch error.

        Args:
            message: Error description.
            path: The path that could not be watched.
        """
        super().__init__(message)
        self.path = path


class NotWatchedError(PathWatchError):
    """Raised when unwatching a path that has no registered subscribers."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Path is not watched: {path}")
        self.path = path


class PrimitiveError(PathWatchError):
    """Asynchronous error reported by the watch primitive's event stream.

    Delivered in-band on the event stream rather than raised; typically
    signals that raw events were dropped.
    """
