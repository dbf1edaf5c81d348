"""Shared fixtures: a fresh center and scheduler per test."""

from __future__ import annotations

import pytest

from typed_notification.config import CenterSettings
from typed_notification.domain.center import NotificationCenter
from typed_notification.domain.models import HandlerErrorPolicy
from typed_notification.repos.memory import SubscriptionRepository
from typed_notification.services.schedulers import SerialQueueScheduler


@pytest.fixture()
def repository() -> SubscriptionRepository:
    return SubscriptionRepository()


@pytest.fixture()
def center(repository: SubscriptionRepository) -> NotificationCenter:
    return NotificationCenter(repository=repository)


@pytest.fixture()
def isolating_center() -> NotificationCenter:
    return NotificationCenter(
        settings=CenterSettings(handler_errors=HandlerErrorPolicy.ISOLATE)
    )


@pytest.fixture()
def main_queue():
    """A serial scheduler standing in for an application's main thread."""
    scheduler = SerialQueueScheduler(name="test-main-queue")
    yield scheduler
    scheduler.close()
