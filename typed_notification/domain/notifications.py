"""Typed notification payloads and their dispatch identity."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict


class TypedNotification(BaseModel):
    """Base class for strongly typed notifications.

    Subclasses declare their payload as pydantic fields::

        class DownloadFinished(TypedNotification):
            url: str
            size: int

    The dispatch key is the class name. Set ``notification_name_override`` on
    a subclass to pin an explicit name instead. Two unrelated classes that
    share a ``__name__`` (say, from different modules) resolve to the same
    key. That collision is not detected: posts of one are offered to the
    other's subscribers and silently dropped by their type check.
    """

    model_config = ConfigDict(frozen=True)

    notification_name_override: ClassVar[str | None] = None

    @classmethod
    def notification_name(cls) -> str:
        # Overrides only apply to the class that declares them.
        override = cls.__dict__.get("notification_name_override")
        return override or cls.__name__


def event_type_id(notification: Any) -> str:
    """Return the dispatch key for a notification class or instance."""
    notification_type = notification if isinstance(notification, type) else type(notification)
    if not issubclass(notification_type, TypedNotification):
        raise TypeError(
            f"{notification_type.__qualname__} is not a TypedNotification subclass"
        )
    return notification_type.notification_name()
