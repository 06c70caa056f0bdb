"""Path to subscriber registry."""

from pathwatch.watch.types import Subscriber


class WatchRegistry:
    """Maps each watched path to its subscribers in registration order.

    A path is present only while it has at least one subscriber. The same
    subscriber may be registered more than once for a path; each
    registration is notified separately.
    """

    def __init__(self) -> None:
        self._watched: dict[str, list[Subscriber]] = {}

    def __contains__(self, path: object) -> bool:
        return path in self._watched

    def __len__(self) -> int:
        return len(self._watched)

    def paths(self) -> list[str]:
        """All watched paths."""
        return list(self._watched)

    def add(self, path: str, subscriber: Subscriber) -> None:
        """Append a subscriber to the path's list, creating it if absent."""
        self._watched.setdefault(path, []).append(subscriber)

    def remove(self, path: str, subscriber: Subscriber | None = None) -> list[Subscriber]:
        """Remove subscribers from a path.

        Args:
            path: Watched path.
            subscriber: Subscriber to remove, or None to remove all of them.

        Returns:
            The subscribers that were removed, empty if none matched.
        """
        subscribers = self._watched.get(path)
        if subscribers is None:
            return []

        if subscriber is None:
            del self._watched[path]
            return subscribers

        for index, registered in enumerate(subscribers):
            if registered is subscriber:
                del subscribers[index]
                break
        else:
            return []

        if not subscribers:
            del self._watched[path]
        return [subscriber]

    def subscribers_of(self, path: str) -> list[Subscriber]:
        """Copy of the path's subscribers, empty if the path is unknown."""
        return list(self._watched.get(path, ()))

    def snapshot(self) -> dict[str, tuple[Subscriber, ...]]:
        return {path: tuple(subs) for path, subs in self._watched.items()}

    def clear(self) -> None:
        self._watched.clear()
