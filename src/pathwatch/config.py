"""Watcher configuration loaded from environment variables."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Watcher configuration loaded from environment variables.

    Attributes:
        debug: Enable debug-level logging.
        event_queue_size: Maximum raw events buffered for the dispatcher.
        observer_timeout: Polling timeout of the watchdog observer.
        shutdown_timeout: Seconds to wait for the dispatcher thread on close.
    """

    model_config = SettingsConfigDict(
        env_prefix="PATHWATCH_",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False
    event_queue_size: int = Field(default=4096, gt=0)
    observer_timeout: float = Field(default=1.0, gt=0)
    shutdown_timeout: float = 5.0
