"""Watcher factory wiring configuration, primitive and filesystem."""

import structlog

from pathwatch.config import Settings
from pathwatch.logging import configure_logging
from pathwatch.watch import LocalFilesystem, Watcher, WatchdogPrimitive

logger = structlog.get_logger()


def create_watcher(settings: Settings | None = None) -> Watcher:
    """Create a watcher backed by a watchdog observer.

    Configures logging from the settings. The dispatcher is not started;
    call start() or use the watcher as a context manager.

    Args:
        settings: Watcher configuration, loaded from the environment if None.

    Returns:
        Configured Watcher instance.
    """
    if settings is None:
        settings = Settings()
    configure_logging(debug=settings.debug)

    primitive = WatchdogPrimitive(
        queue_size=settings.event_queue_size,
        observer_timeout=settings.observer_timeout,
    )
    watcher = Watcher(
        primitive,
        filesystem=LocalFilesystem(),
        shutdown_timeout=settings.shutdown_timeout,
    )
    logger.debug(
        "watcher_created",
        event_queue_size=settings.event_queue_size,
        observer_timeout=settings.observer_timeout,
    )
    return watcher
