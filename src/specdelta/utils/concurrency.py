"""Bounded async worker pool for independent validation jobs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterable

T = TypeVar("T")


@dataclass(slots=True)
class WorkerPool(Generic[T]):
    """
    Run jobs with at most ``max_concurrency`` in flight and yield results as they finish.

    A job is a zero-argument callable returning an awaitable; it is only invoked once
    a slot is free. When ``on_error`` is given, a job that raises is turned into a
    result by ``on_error(index, exc)`` and its siblings keep running. Without it the
    first failure propagates once the remaining jobs have completed. There is no
    cancellation: every dispatched job runs to completion.
    """

    max_concurrency: int
    _semaphore: asyncio.Semaphore = field(init=False, repr=False)
    _in_flight: int = field(init=False, default=0, repr=False)
    _peak_in_flight: int = field(init=False, default=0, repr=False)

    def __post_init__(self) -> None:
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        self._semaphore = asyncio.Semaphore(self.max_concurrency)

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        return self._peak_in_flight

    async def run(
        self,
        jobs: Iterable[Callable[[], Awaitable[T]]],
        *,
        on_error: Callable[[int, Exception], T] | None = None,
    ) -> AsyncIterator[T]:
        tasks = {
            asyncio.create_task(self._run_one(index, job, on_error))
            for index, job in enumerate(jobs)
        }
        first_error: Exception | None = None
        while tasks:
            done, tasks = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                exc = task.exception()
                if exc is not None:
                    if first_error is None and isinstance(exc, Exception):
                        first_error = exc
                    elif not isinstance(exc, Exception):
                        raise exc
                    continue
                yield task.result()
        if first_error is not None:
            raise first_error

    async def collect(
        self,
        jobs: Iterable[Callable[[], Awaitable[T]]],
        *,
        on_error: Callable[[int, Exception], T] | None = None,
    ) -> list[T]:
        """Run ``jobs`` and return results in completion order."""

        return [result async for result in self.run(jobs, on_error=on_error)]

    async def _run_one(
        self,
        index: int,
        job: Callable[[], Awaitable[T]],
        on_error: Callable[[int, Exception], T] | None,
    ) -> T:
        async with self._semaphore:
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                return await job()
            except Exception as exc:
                if on_error is None:
                    raise
                return on_error(index, exc)
            finally:
                self._in_flight -= 1


__all__ = ["WorkerPool"]
