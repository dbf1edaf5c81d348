"""In-memory, thread-safe registry of subscriptions."""

from __future__ import annotations

import threading

from typed_notification.domain.models import Subscription


class SubscriptionRepository:
    """Dict-backed store of subscriptions keyed by notification name.

    Each name maps to a list kept in registration order, which is also the
    delivery order. Every read and write holds ``_lock``; readers get tuple
    snapshots so iteration never races a later mutation.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._by_name: dict[str, list[Subscription]] = {}
        self._by_id: dict[str, Subscription] = {}

    def add(self, subscription: Subscription) -> None:
        with self._lock:
            self._by_name.setdefault(subscription.name, []).append(subscription)
            self._by_id[subscription.id] = subscription

    def remove(self, subscription_id: str) -> bool:
        """Remove by id. Returns False if it was already gone."""
        with self._lock:
            subscription = self._by_id.pop(subscription_id, None)
            if subscription is None:
                return False

            remaining = [
                s for s in self._by_name.get(subscription.name, []) if s.id != subscription_id
            ]
            if remaining:
                self._by_name[subscription.name] = remaining
            else:
                self._by_name.pop(subscription.name, None)
            return True

    def remove_name(self, name: str) -> list[Subscription]:
        with self._lock:
            removed = self._by_name.pop(name, [])
            for subscription in removed:
                self._by_id.pop(subscription.id, None)
            return removed

    def is_active(self, subscription_id: str) -> bool:
        with self._lock:
            return subscription_id in self._by_id

    def snapshot(self, name: str) -> tuple[Subscription, ...]:
        with self._lock:
            return tuple(self._by_name.get(name, ()))

    def count(self, name: str | None = None) -> int:
        with self._lock:
            if name is None:
                return len(self._by_id)
            return len(self._by_name.get(name, ()))

    def clear(self) -> list[Subscription]:
        with self._lock:
            removed = list(self._by_id.values())
            self._by_name.clear()
            self._by_id.clear()
            return removed
