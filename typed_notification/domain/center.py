"""Synchronous, thread-safe notification center for typed notifications."""

from __future__ import annotations

import inspect
import weakref
from typing import Any, Callable, TypeVar

from typed_notification.config import CenterSettings
from typed_notification.domain.models import Envelope, HandlerErrorPolicy, Subscription
from typed_notification.domain.notifications import TypedNotification, event_type_id
from typed_notification.domain.token import NotificationToken
from typed_notification.logging_config import get_logger
from typed_notification.repos.memory import SubscriptionRepository
from typed_notification.services.schedulers import Scheduler

logger = get_logger(__name__)

N = TypeVar("N", bound=TypedNotification)
F = TypeVar("F", bound=Callable[..., Any])


class NotificationCenter:
    """Publish/subscribe center keyed by notification type.

    Handlers for one type are called in registration order. Handlers without
    a scheduler run inline on the posting thread; handlers with one are
    handed to it and ``post`` does not wait for them.
    """

    def __init__(
        self,
        settings: CenterSettings | None = None,
        repository: SubscriptionRepository | None = None,
    ) -> None:
        self.settings = settings or CenterSettings()
        self._subscriptions = repository if repository is not None else SubscriptionRepository()

    @classmethod
    def from_env(cls) -> NotificationCenter:
        return cls(settings=CenterSettings.from_env())

    # ------------------------------------------------------------------
    # Subscribing
    # ------------------------------------------------------------------

    def subscribe(
        self,
        notification_type: type[N],
        handler: Callable[..., Any],
        *,
        sender: Any = None,
        scheduler: Scheduler | None = None,
        predicate: Callable[[N], bool] | None = None,
        transform: Callable[[N], Any] | None = None,
        compact_transform: Callable[[N], Any | None] | None = None,
        weak: bool = False,
    ) -> NotificationToken:
        """Register ``handler`` for every posted ``notification_type``.

        Args:
            notification_type: The ``TypedNotification`` subclass to observe.
            handler: Called with the notification, or with the transform's
                result when a transform is given. Held strongly unless
                ``weak`` is set.
            sender: Only accept posts from this exact object. ``None``
                accepts every sender.
            scheduler: Where the handler runs. ``None`` runs it inline
                within ``post``.
            predicate: Drop notifications for which this returns False.
                Evaluated before any transform.
            transform: Map the notification to the value passed to
                ``handler``.
            compact_transform: Like ``transform``, but a ``None`` result
                drops the notification.
            weak: Hold a bound-method ``handler`` through a
                ``weakref.WeakMethod`` so the subscription does not keep its
                instance alive. After the instance is collected the handler
                is skipped; the token still decides when the subscription
                ends. Ignored for other callables.

        Returns:
            A ``NotificationToken``. The subscription lives exactly as long
            as the token, so keep a reference to it.
        """
        if not isinstance(notification_type, type):
            raise TypeError("subscribe() expects a notification class, not an instance")
        if transform is not None and compact_transform is not None:
            raise ValueError("pass either transform or compact_transform, not both")

        name = event_type_id(notification_type)
        weak_handler = weak and inspect.ismethod(handler)
        subscription = Subscription(
            name=name,
            notification_type=notification_type,
            handler=weakref.WeakMethod(handler) if weak_handler else handler,
            weak_handler=weak_handler,
            sender=sender,
            predicate=predicate,
            transform=transform if transform is not None else compact_transform,
            drop_none=compact_transform is not None,
            scheduler=scheduler,
        )
        self._subscriptions.add(subscription)
        token = NotificationToken(self, subscription.id, name)

        logger.debug(
            "notification_subscribed",
            notification=name,
            subscription_id=subscription.id,
            scheduled=scheduler is not None,
        )
        return token

    def observe(self, notification_type: type[N], **options: Any) -> Callable[[F], F]:
        """Decorator form of ``subscribe`` for module-level handlers.

        The token is stored on the function as ``__notification_token__``.
        The function keeps its own token alive, so the subscription lasts
        until that token is cancelled::

            @center.observe(DownloadFinished)
            def on_download(notification):
                ...

            on_download.__notification_token__.cancel()

        Handlers that should go away with an owning object belong in an
        ``ObserverRegistry`` subclass instead.
        """

        def decorator(fn: F) -> F:
            fn.__notification_token__ = self.subscribe(notification_type, fn, **options)  # type: ignore[attr-defined]
            return fn

        return decorator

    def unsubscribe(self, token: NotificationToken) -> None:
        """Remove the subscription behind ``token``. Safe to repeat."""
        token.cancel()

    def remove_all(self, notification_type: type[TypedNotification] | None = None) -> int:
        """Drop every subscription, or every subscription for one type.

        Tokens of removed subscriptions become inert. Returns how many were
        removed.
        """
        if notification_type is None:
            removed = self._subscriptions.clear()
        else:
            removed = self._subscriptions.remove_name(event_type_id(notification_type))
        logger.info("notifications_removed", count=len(removed))
        return len(removed)

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    def post(self, notification: TypedNotification, sender: Any = None) -> None:
        """Deliver ``notification`` to every matching subscription."""
        if isinstance(notification, type):
            raise TypeError("post() expects a notification instance, not a class")

        envelope = Envelope(name=event_type_id(notification), notification=notification, sender=sender)

        # Subscriptions added from here on are not part of this pass.
        subscriptions = self._subscriptions.snapshot(envelope.name)
        if not subscriptions:
            logger.debug("notification_unobserved", notification=envelope.name)
            return

        logger.debug(
            "notification_posted",
            notification=envelope.name,
            subscribers=len(subscriptions),
        )

        for subscription in subscriptions:
            if not subscription.matches_sender(envelope.sender):
                continue
            if not self._subscriptions.is_active(subscription.id):
                continue

            if subscription.scheduler is None:
                self._deliver_inline(subscription, envelope)
            else:
                subscription.scheduler.submit(self._deliver, subscription, envelope)

    def _deliver_inline(self, subscription: Subscription, envelope: Envelope) -> None:
        try:
            self._deliver(subscription, envelope)
        except Exception:
            if self.settings.handler_errors is HandlerErrorPolicy.PROPAGATE:
                raise
            logger.exception(
                "notification_handler_failed",
                notification=envelope.name,
                subscription_id=subscription.id,
            )

    def _deliver(self, subscription: Subscription, envelope: Envelope) -> bool:
        # Re-checked here because scheduled work may run after removal.
        if not self._subscriptions.is_active(subscription.id):
            return False
        notification = envelope.notification
        if not isinstance(notification, subscription.notification_type):
            return False
        return subscription.deliver(notification)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_registered(self, subscription_id: str) -> bool:
        return self._subscriptions.is_active(subscription_id)

    def subscription_count(self, notification_type: type[TypedNotification] | None = None) -> int:
        if notification_type is None:
            return self._subscriptions.count()
        return self._subscriptions.count(event_type_id(notification_type))

    def _release(self, subscription_id: str) -> None:
        # Called by NotificationToken's finalizer, possibly from the GC.
        if self._subscriptions.remove(subscription_id):
            logger.debug("notification_unsubscribed", subscription_id=subscription_id)
