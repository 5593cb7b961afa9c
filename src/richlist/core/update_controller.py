"""Shared update controller to run background jobs safely."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
import threading
from typing import Callable, TypeVar

from loguru import logger

MAX_JOB_WORKERS = 4
MAX_HTTP_CONCURRENCY = 4

_EXECUTOR = ThreadPoolExecutor(max_workers=MAX_JOB_WORKERS, thread_name_prefix="richlist")
_HTTP_SEMAPHORE = threading.BoundedSemaphore(MAX_HTTP_CONCURRENCY)

T = TypeVar("T")


class SafeUpdateController:
    """Submits one-shot jobs with in-flight protection per key."""

    def __init__(self, executor: ThreadPoolExecutor | None = None) -> None:
        self._executor = executor or _EXECUTOR
        self._in_flight: dict[str, object] = {}
        self._lock = threading.Lock()

    def submit(
        self,
        key: str,
        task: Callable[[], T],
        on_success: Callable[[T], None] | None = None,
        on_failure: Callable[[Exception], None] | None = None,
    ) -> Future[T] | None:
        """Run ``task`` in the pool unless a job with ``key`` is still running."""
        job = object()
        with self._lock:
            if key in self._in_flight:
                return None
            self._in_flight[key] = job

        def _run() -> T:
            try:
                return task()
            finally:
                self._release(key, job)

        try:
            future = self._executor.submit(_run)
        except RuntimeError:
            self._release(key, job)
            raise

        def _done(fut: Future[T]) -> None:
            if fut.cancelled():
                self._release(key, job)
                return
            exc = fut.exception()
            if exc is not None:
                if on_failure is not None:
                    on_failure(exc)  # type: ignore[arg-type]
                else:
                    logger.error("Job {} failed: {}", key, exc)
                return
            if on_success is not None:
                on_success(fut.result())

        future.add_done_callback(_done)
        return future

    def is_running(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight

    def clear_key(self, key: str) -> None:
        """Free ``key`` before its job returns.

        A job may call this once its remaining work is only reporting, so a
        follow-up job under the same key can be queued right away.
        """
        with self._lock:
            self._in_flight.pop(key, None)

    def _release(self, key: str, job: object) -> None:
        with self._lock:
            if self._in_flight.get(key) is job:
                del self._in_flight[key]


_controller: SafeUpdateController | None = None


def get_update_controller() -> SafeUpdateController:
    global _controller  # noqa: PLW0603
    if _controller is None:
        _controller = SafeUpdateController()
    return _controller


@contextmanager
def http_slot():
    _HTTP_SEMAPHORE.acquire()
    try:
        yield
    finally:
        _HTTP_SEMAPHORE.release()
