"""
Background execution for import jobs.
"""
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Protocol


class ImportTaskExecutor(Protocol):
    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        ...


class ThreadPoolTaskExecutor:
    """Runs each import on a bounded pool of worker threads."""

    def __init__(self, max_workers: int):
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="market-import")

    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        return self._pool.submit(task, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait, cancel_futures=not wait)
