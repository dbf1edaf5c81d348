"""Caller-held handle tying a subscription's lifetime to an object."""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any

from typed_notification.domain.models import TokenState

if TYPE_CHECKING:
    from typed_notification.domain.center import NotificationCenter


class NotificationToken:
    """Owns one subscription on a ``NotificationCenter``.

    The subscription stays registered for as long as the token is alive.
    It is removed when any of these happens first:

    - ``cancel()`` / ``close()`` or ``center.unsubscribe(token)``
    - the ``with`` block using the token exits
    - the token is garbage collected

    On CPython the last reference going away collects the token right away,
    so simply keeping it on ``self`` and letting the owner die is enough.
    Other interpreters collect later; call ``cancel()`` there.

    A handler that reaches its own token keeps it alive. That covers a
    closure over the token and a bound method whose instance stores it.
    Subscribe such methods with ``weak=True``, or capture a ``weakref`` to
    the owner.
    """

    def __init__(self, center: NotificationCenter, subscription_id: str, name: str) -> None:
        self.subscription_id = subscription_id
        self.name = name
        self._center = center
        # The finalizer must not reference self, or the token would never die.
        self._finalizer = weakref.finalize(self, center._release, subscription_id)
        self._finalizer.atexit = False

    @property
    def center(self) -> NotificationCenter:
        return self._center

    @property
    def state(self) -> TokenState:
        if self._finalizer.alive and self._center.is_registered(self.subscription_id):
            return TokenState.ACTIVE
        return TokenState.CANCELLED

    @property
    def active(self) -> bool:
        return self.state is TokenState.ACTIVE

    def cancel(self) -> None:
        """Deregister the subscription. Further calls do nothing."""
        self._finalizer()

    close = cancel

    def __enter__(self) -> NotificationToken:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cancel()

    def __repr__(self) -> str:
        return (
            f"<NotificationToken {self.name} id={self.subscription_id} "
            f"state={self.state.value}>"
        )
