"""Tests for the delivery schedulers."""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from structlog.testing import capture_logs

from typed_notification.domain.center import NotificationCenter
from typed_notification.domain.notifications import TypedNotification
from typed_notification.services.schedulers import (
    AsyncioScheduler,
    ExecutorScheduler,
    Scheduler,
    SerialQueueScheduler,
)


class Sample(TypedNotification):
    value: str


def test_schedulers_satisfy_protocol():
    with ThreadPoolExecutor(max_workers=1) as pool:
        assert isinstance(ExecutorScheduler(pool), Scheduler)
        assert isinstance(pool, Scheduler)
    with SerialQueueScheduler() as serial:
        assert isinstance(serial, Scheduler)


# ---------------------------------------------------------------------------
# SerialQueueScheduler
# ---------------------------------------------------------------------------


def test_serial_queue_runs_in_submission_order():
    order: list[int] = []
    with SerialQueueScheduler() as scheduler:
        for i in range(20):
            scheduler.submit(order.append, i)
        scheduler.join()

    assert order == list(range(20))


def test_serial_queue_runs_on_its_own_thread():
    seen: list[bool] = []
    with SerialQueueScheduler(name="worker") as scheduler:
        scheduler.submit(lambda: seen.append(scheduler.is_current()))
        scheduler.join()
        assert not scheduler.is_current()

    assert seen == [True]


def test_closed_serial_queue_rejects_work():
    scheduler = SerialQueueScheduler()
    scheduler.close()
    scheduler.close()

    assert scheduler.closed
    with pytest.raises(RuntimeError):
        scheduler.submit(print)


def test_closing_drains_pending_work():
    done: list[str] = []
    scheduler = SerialQueueScheduler()
    scheduler.submit(done.append, "pending")
    scheduler.close(wait=True)

    assert done == ["pending"]


# ---------------------------------------------------------------------------
# ExecutorScheduler
# ---------------------------------------------------------------------------


def test_executor_scheduler_delivers_and_logs_failures(center: NotificationCenter):
    received: list[str] = []

    def handler(notification: Sample) -> None:
        if notification.value == "bad":
            raise ValueError("bad notification")
        received.append(notification.value)

    with capture_logs() as logs:
        with ThreadPoolExecutor(max_workers=1) as pool:
            scheduler = ExecutorScheduler(pool, name="pool")
            token = center.subscribe(Sample, handler, scheduler=scheduler)
            center.post(Sample(value="bad"))
            center.post(Sample(value="good"))

    assert received == ["good"]
    failures = [e for e in logs if e["event"] == "scheduled_delivery_failed"]
    assert len(failures) == 1
    assert failures[0]["scheduler"] == "pool"
    token.cancel()


# ---------------------------------------------------------------------------
# AsyncioScheduler
# ---------------------------------------------------------------------------


def test_asyncio_scheduler_delivers_on_loop_thread(center: NotificationCenter):
    async def scenario() -> tuple[str, bool]:
        loop = asyncio.get_running_loop()
        loop_thread = threading.current_thread()
        future: asyncio.Future[tuple[str, bool]] = loop.create_future()

        def handler(value: str) -> None:
            future.set_result((value, threading.current_thread() is loop_thread))

        token = center.subscribe(
            Sample, handler, scheduler=AsyncioScheduler(loop), transform=lambda n: n.value
        )
        poster = threading.Thread(target=center.post, args=(Sample(value="from thread"),))
        poster.start()
        try:
            return await asyncio.wait_for(future, timeout=5)
        finally:
            poster.join()
            token.cancel()

    assert asyncio.run(scenario()) == ("from thread", True)


def test_asyncio_scheduler_logs_failures():
    async def scenario() -> None:
        scheduler = AsyncioScheduler(asyncio.get_running_loop(), name="loop")
        scheduler.submit(lambda: 1 / 0)
        await asyncio.sleep(0.01)

    with capture_logs() as logs:
        asyncio.run(scenario())

    assert [e["event"] for e in logs] == ["scheduled_delivery_failed"]
    assert logs[0]["scheduler"] == "loop"
