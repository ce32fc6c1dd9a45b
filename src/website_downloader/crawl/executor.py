"""Thread pool that records the first failure raised by any of its tasks."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor

logger = logging.getLogger(__name__)


class AtomicCounter:
    """Integer with linearizable increment, decrement and read."""

    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def decrement(self) -> int:
        with self._lock:
            self._value -= 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class ExtendedExecutor(ThreadPoolExecutor):
    """
    Fixed-size ThreadPoolExecutor (unbounded FIFO queue) that captures the first
    exception raised by a submitted task and exposes it via first_failure.

    Capture is observational only: a failure never cancels queued or running
    work. Later failures are dropped.
    """

    def __init__(self, max_workers: int, thread_name_prefix: str = "crawl-worker"):
        if max_workers < 1:
            raise ValueError("The number of threads must be greater than zero")
        super().__init__(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._failure: BaseException | None = None
        self._failure_lock = threading.Lock()
        self._outstanding = AtomicCounter()
        self._shutdown_requested = threading.Event()

    def submit(self, fn, /, *args, **kwargs) -> Future:
        """Enqueue fn. Never blocks; raises RuntimeError after shutdown."""
        self._outstanding.increment()
        try:
            future = super().submit(fn, *args, **kwargs)
        except BaseException:
            self._outstanding.decrement()
            raise
        future.add_done_callback(self._after_execute)
        return future

    def _after_execute(self, future: Future) -> None:
        try:
            if not future.cancelled():
                exc = future.exception()
                if exc is not None:
                    self._record_failure(exc)
        finally:
            self._outstanding.decrement()

    def _record_failure(self, exc: BaseException) -> None:
        with self._failure_lock:
            if self._failure is None:
                self._failure = exc
                logger.debug("Captured first failure: %r", exc)
                return
        logger.debug("Dropping subsequent failure: %r", exc)

    @property
    def first_failure(self) -> BaseException | None:
        with self._failure_lock:
            return self._failure

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        self._shutdown_requested.set()
        super().shutdown(wait=wait, cancel_futures=cancel_futures)

    def is_shutdown(self) -> bool:
        return self._shutdown_requested.is_set()

    def is_terminated(self) -> bool:
        """
        True once shutdown was requested, every submitted task has finished and
        every worker thread has exited.
        """
        if not self._shutdown_requested.is_set() or self._outstanding.value:
            return False
        # _threads is the worker set maintained by ThreadPoolExecutor.
        return not any(t.is_alive() for t in list(self._threads))
