"""Fixed-size worker pool draining a pre-filled task queue."""

from __future__ import annotations

import queue
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Generic, Iterable, TypeVar

import structlog

T = TypeVar("T")


class WorkerPool(Generic[T]):
    """Run ``handler`` over every item with ``workers`` threads.

    Every item is queued before the first worker starts; each worker then pulls
    items until the queue is empty. :meth:`drain` returns only once all workers
    have exited.
    """

    def __init__(
        self,
        workers: int = 3,
        logger: structlog.BoundLogger | None = None,
        thread_name_prefix: str = "downloader",
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.workers = workers
        self.thread_name_prefix = thread_name_prefix
        self.logger = logger or structlog.get_logger("leak_checker.thread_pool")

    def drain(
        self,
        items: Iterable[T],
        handler: Callable[[T], object],
        on_worker_exit: Callable[[], None] | None = None,
    ) -> int:
        """Handle every item; ``on_worker_exit`` runs on each worker thread as it stops."""

        tasks: queue.Queue[T] = queue.Queue()
        for item in items:
            tasks.put(item)
        total = tasks.qsize()

        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix=self.thread_name_prefix
        ) as executor:
            futures = [
                executor.submit(self._work, tasks, handler, on_worker_exit)
                for _ in range(self.workers)
            ]
            wait(futures)
        for future in futures:
            future.result()
        return total

    def _work(
        self,
        tasks: "queue.Queue[T]",
        handler: Callable[[T], object],
        on_worker_exit: Callable[[], None] | None,
    ) -> None:
        try:
            while True:
                try:
                    item = tasks.get_nowait()
                except queue.Empty:
                    return
                try:
                    handler(item)
                except Exception as exc:  # noqa: BLE001
                    self.logger.error("worker_task_failed", item=item, error=str(exc), exc_info=True)
                finally:
                    tasks.task_done()
        finally:
            if on_worker_exit is not None:
                on_worker_exit()


__all__ = ["WorkerPool"]
