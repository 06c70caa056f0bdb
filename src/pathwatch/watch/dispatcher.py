"""Resolution of raw events to subscriber notifications."""
from dataclasses import dataclass
from pathlib import PurePath

import structlog

from pathwatch.watch.coverage import CoverageTracker
from pathwatch.watch.registry import WatchRegistry
from pathwatch.watch.types import CALLBACKS, EventKind, RawEvent, Subscriber

logger = structlog.get_logger()


@dataclass(frozen=True)
class Notification:
    """A resolved event ready to be delivered.

    Attributes:
        path: Path passed to each subscriber callback.
        kind: Event kind selecting the callback method.
        subscribers: Subscribers to notify, in registration order.
    """

    path: str
    kind: EventKind
    subscribers: tuple[Subscriber, ...]


def _receives_child_events(directory: str, coverage: CoverageTracker) -> bool:
    if coverage.is_active(directory) and coverage.is_covering(directory):
        return True
    return coverage.covering_ancestor(directory) is not None


def resolve(
    event: RawEvent,
    registry: WatchRegistry,
    coverage: CoverageTracker,
) -> Notification | None:
    """Resolve a raw event to the subscribers that should hear about it.

    Events on a watched path go to that path's subscribers. A create
    (including the new name of a rename) directly inside a watched
    directory that receives events for its children goes to the
    directory's subscribers, naming the new child path. Everything else
    is unroutable.

    Must be called with the watcher's state lock held.

    Args:
        event: Raw event from the primitive.
        registry: Watched paths and their subscribers.
        coverage: Active watches and covering directories.

    Returns:
        Notification to deliver, or None if the event is unroutable.
    """
    if event.path in registry:
        return Notification(
            path=event.path,
            kind=event.kind,
            subscribers=tuple(registry.subscribers_of(event.path)),
        )

    if event.kind is EventKind.CREATE:
        parent = str(PurePath(event.path).parent)
        if (
            parent != event.path
            and parent in registry
            and _receives_child_events(parent, coverage)
        ):
            return Notification(
                path=event.path,
                kind=event.kind,
                subscribers=tuple(registry.subscribers_of(parent)),
            )

    return None


def deliver(notification: Notification) -> int:
    """Invoke the matching callback on every subscriber, in order.

    A failing subscriber is logged and does not prevent delivery to
    the rest.

    Args:
        notification: Resolved notification.

    Returns:
        Number of subscribers whose callback completed without error.
    """
    method = CALLBACKS[notification.kind]
    delivered = 0
    for subscriber in notification.subscribers:
        try:
            getattr(subscriber, method)(notification.path)
            delivered += 1
        except Exception as e:
            logger.error(
                "subscriber_callback_error",
                error=str(e),
                path=notification.path,
                callback=method,
            )
    return delivered
