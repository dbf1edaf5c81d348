"""Owner-scoped collections of notification tokens."""

from __future__ import annotations

from typing import Any, Callable, Iterator

from typed_notification.domain.center import NotificationCenter
from typed_notification.domain.notifications import TypedNotification
from typed_notification.domain.token import NotificationToken


class ObserverRegistry:
    """Wires handlers to a center and keeps their tokens.

    Subclasses override ``_register`` to subscribe their own methods::

        class DownloadObserver(ObserverRegistry):
            def _register(self) -> None:
                self.subscribe(DownloadFinished, self.on_download_finished)

            def on_download_finished(self, notification: DownloadFinished) -> None:
                ...

    ``subscribe`` asks the center to hold bound-method handlers weakly, so
    the registry is not kept alive by its own subscriptions. When the last
    reference to it goes away its tokens go with it and every subscription
    it made is removed.
    """

    def __init__(self, center: NotificationCenter) -> None:
        self.center = center
        self._tokens: list[NotificationToken] = []
        self._register()

    def _register(self) -> None:
        pass

    def subscribe(
        self,
        notification_type: type[TypedNotification],
        handler: Callable[..., Any],
        **options: Any,
    ) -> NotificationToken:
        options.setdefault("weak", True)
        token = self.center.subscribe(notification_type, handler, **options)
        self._tokens.append(token)
        return token

    def add(self, token: NotificationToken) -> NotificationToken:
        self._tokens.append(token)
        return token

    def cancel_all(self) -> None:
        tokens, self._tokens = self._tokens, []
        for token in tokens:
            token.cancel()

    close = cancel_all

    def __len__(self) -> int:
        return sum(1 for token in self._tokens if token.active)

    def __iter__(self) -> Iterator[NotificationToken]:
        return iter(list(self._tokens))

    def __enter__(self) -> ObserverRegistry:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cancel_all()
