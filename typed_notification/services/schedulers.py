"""Execution contexts that deliver notifications off the posting thread.

A subscription without a scheduler is delivered inline by ``post``. One with
a scheduler is handed over through ``submit`` and ``post`` moves on without
waiting. Any object with a ``submit(fn, *args)`` method qualifies, including
a bare ``concurrent.futures.Executor``.
"""

from __future__ import annotations

import asyncio
import queue
import threading
from concurrent.futures import Executor, Future
from typing import Any, Callable, Protocol, runtime_checkable

from typed_notification.logging_config import get_logger

logger = get_logger(__name__)

_STOP = object()


@runtime_checkable
class Scheduler(Protocol):
    def submit(self, fn: Callable[..., Any], /, *args: Any) -> Any: ...


def _handler_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)


class SerialQueueScheduler:
    """A single worker thread draining a FIFO queue.

    Work submitted from any thread runs one item at a time in submission
    order, so subscriptions sharing this scheduler are delivered in
    registration order. A failing item is logged and the worker carries on.
    """

    def __init__(self, name: str = "notification-queue") -> None:
        self.name = name
        self._queue: queue.Queue[Any] = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def submit(self, fn: Callable[..., Any], /, *args: Any) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError(f"scheduler {self.name!r} is closed")
            self._queue.put((fn, args))

    def is_current(self) -> bool:
        """True when called from this scheduler's worker thread."""
        return threading.current_thread() is self._thread

    def join(self) -> None:
        """Block until everything submitted so far has run."""
        self._queue.join()

    def close(self, wait: bool = True, timeout: float | None = 5.0) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_STOP)
        if wait and not self.is_current():
            self._thread.join(timeout=timeout)
        logger.debug("scheduler_closed", scheduler=self.name)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> SerialQueueScheduler:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                fn, args = item
                try:
                    fn(*args)
                except Exception:
                    logger.exception(
                        "scheduled_delivery_failed",
                        scheduler=self.name,
                        handler=_handler_name(fn),
                    )
            finally:
                self._queue.task_done()


class ExecutorScheduler:
    """Adapts a ``concurrent.futures.Executor``.

    Ordering is only as strong as the executor's: a single-worker pool keeps
    submission order, a wider pool does not.
    """

    def __init__(self, executor: Executor, name: str = "notification-executor") -> None:
        self.executor = executor
        self.name = name

    def submit(self, fn: Callable[..., Any], /, *args: Any) -> Future[Any]:
        future = self.executor.submit(fn, *args)
        future.add_done_callback(self._report_failure)
        return future

    def _report_failure(self, future: Future[Any]) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(
                "scheduled_delivery_failed",
                scheduler=self.name,
                error=repr(error),
                exc_info=error,
            )


class AsyncioScheduler:
    """Delivers on an asyncio event loop's thread.

    Safe to submit from any thread; items run in submission order on the
    loop's next iterations.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, name: str = "notification-loop") -> None:
        self.loop = loop
        self.name = name

    def submit(self, fn: Callable[..., Any], /, *args: Any) -> None:
        self.loop.call_soon_threadsafe(self._run, fn, args)

    def _run(self, fn: Callable[..., Any], args: tuple[Any, ...]) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception(
                "scheduled_delivery_failed",
                scheduler=self.name,
                handler=_handler_name(fn),
            )
