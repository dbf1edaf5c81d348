"""Domain models for the notification registry."""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from typed_notification.domain.notifications import TypedNotification
from typed_notification.services.schedulers import Scheduler

try:
    from enum import StrEnum
except ImportError:  # pragma: no cover - fallback for older Python runtimes

    class StrEnum(str, Enum):
        pass


class HandlerErrorPolicy(StrEnum):
    PROPAGATE = "propagate"
    ISOLATE = "isolate"


class TokenState(StrEnum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Dispatch models
# ---------------------------------------------------------------------------


class Envelope(BaseModel):
    """A notification paired with its sender for the duration of one post."""

    model_config = ConfigDict(frozen=True)

    name: str
    notification: TypedNotification
    sender: Any = None


class Subscription(BaseModel):
    """One observer's interest in one notification type.

    ``sender`` of ``None`` means notifications from any sender are accepted;
    otherwise only posts whose sender *is* this object match.

    With ``weak_handler`` set, ``handler`` is a ``weakref.WeakMethod``. Once
    the method's instance is collected nothing is delivered, but the
    subscription stays registered until its token goes away.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(default_factory=_new_id)
    name: str
    notification_type: type[TypedNotification]
    handler: Callable[..., Any]
    weak_handler: bool = False
    sender: Any = None
    predicate: Callable[[Any], bool] | None = None
    transform: Callable[[Any], Any] | None = None
    drop_none: bool = False
    scheduler: Scheduler | None = None

    def matches_sender(self, sender: Any) -> bool:
        return self.sender is None or self.sender is sender

    def evaluate(self, notification: TypedNotification) -> tuple[bool, Any]:
        """Run predicate then transform; return ``(deliver, value)``."""
        if self.predicate is not None and not self.predicate(notification):
            return False, None

        value: Any = notification
        if self.transform is not None:
            value = self.transform(notification)
            if value is None and self.drop_none:
                return False, None
        return True, value

    def resolve_handler(self) -> Callable[[Any], Any] | None:
        """The callable to invoke, or None once a weakly held owner is gone."""
        if self.weak_handler:
            return self.handler()
        return self.handler

    def deliver(self, notification: TypedNotification) -> bool:
        """Evaluate the pipeline and call the handler; return whether it ran."""
        handler = self.resolve_handler()
        if handler is None:
            return False
        should_deliver, value = self.evaluate(notification)
        if not should_deliver:
            return False
        handler(value)
        return True
