"""Raw event types and the subscriber capability contract."""
from enum import Enum
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """Kinds of raw change notifications emitted by the watch primitive."""

    WRITE = "write"
    CREATE = "create"
    REMOVE = "remove"
    RENAME = "rename"


class RawEvent(BaseModel):
    """Path-addressed change notification from the watch primitive.

    Attributes:
        path: Normalized path the notification refers to.
        kind: What happened to the path.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(min_length=1, description="Path the event refers to")
    kind: EventKind = Field(description="Event kind")


@runtime_checkable
class Subscriber(Protocol):
    """Object notified about changes to the paths it watches.

    Subscribers that do not care about some kinds implement the
    corresponding methods as no-ops.
    """

    def file_changed(self, path: str) -> None: ...

    def file_created(self, path: str) -> None: ...

    def file_removed(self, path: str) -> None: ...

    def file_renamed(self, path: str) -> None: ...


CALLBACKS: dict[EventKind, str] = {
    EventKind.WRITE: "file_changed",
    EventKind.CREATE: "file_created",
    EventKind.REMOVE: "file_removed",
    EventKind.RENAME: "file_renamed",
}
