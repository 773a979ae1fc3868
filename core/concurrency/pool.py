# ruff: noqa: BLE001
"""Priority-ordered pool that bounds the number of outstanding async operations."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Awaitable, Callable, Sequence

    from core.concurrency.rate_limiter import SlidingWindowRateLimiter
    from models.concurrency_models import ConcurrencyConfig

__all__: list[str] = ["BoundedWorkPool", "PoolStatus"]

T = TypeVar("T")

logger: logging.Logger = LoggerUtils.get_logger(__name__)


@dataclass(frozen=True)
class PoolStatus:
    running: int
    queued: int


@dataclass(order=True)
class _PoolItem:
    """Queued operation. Ordering puts higher priority first, then earlier arrival."""

    sort_key: tuple[float, int]
    operation: Callable[[], Awaitable[Any]] = field(compare=False)
    future: asyncio.Future[Any] = field(compare=False)


class BoundedWorkPool:
    """Runs at most ``max_concurrent`` operations at a time in priority order.

    Each dispatched operation first waits ``rate_limit_interval_ms`` and, when a rate limiter is
    attached, a free slot in its window. Settlement of one operation immediately dispatches the next,
    so throughput is bounded only by the concurrency ceiling and the dispatch delay.

    Changing the ceiling or the delay affects later dispatches only; running operations are never
    cancelled or modified.
    """

    def __init__(
        self,
        max_concurrent: int = 5,
        rate_limit_interval_ms: float = 0.0,
        rate_limiter: SlidingWindowRateLimiter | None = None,
    ) -> None:
        self._queue: list[_PoolItem] = []
        self._max_concurrent: int = 1
        self._rate_limit_interval_ms: float = 0.0
        self.max_concurrent = max_concurrent
        self.rate_limit_interval_ms = rate_limit_interval_ms
        self.rate_limiter: SlidingWindowRateLimiter | None = rate_limiter
        self._sequence: itertools.count[int] = itertools.count()
        self._running: int = 0
        self._tasks: set[asyncio.Task[None]] = set()
        self._idle: asyncio.Event = asyncio.Event()
        self._idle.set()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @max_concurrent.setter
    def max_concurrent(self, value: int) -> None:
        if value < 1:
            msg: str = f"max_concurrent must be at least 1: {value}"
            raise ValueError(msg)
        raised: bool = value > self._max_concurrent
        self._max_concurrent = int(value)
        if raised and self._queue:
            self._dispatch()

    @property
    def rate_limit_interval_ms(self) -> float:
        return self._rate_limit_interval_ms

    @rate_limit_interval_ms.setter
    def rate_limit_interval_ms(self, value: float) -> None:
        if value < 0:
            msg: str = f"rate_limit_interval_ms must not be negative: {value}"
            raise ValueError(msg)
        self._rate_limit_interval_ms = float(value)

    def apply_config(self, config: ConcurrencyConfig) -> None:
        """Adopt the concurrency ceiling and dispatch delay of ``config``."""
        if (
            config.max_concurrent != self._max_concurrent
            or config.rate_limit_interval_ms != self._rate_limit_interval_ms
        ):
            logger.debug(
                "Pool reconfigured: concurrency %d -> %d, interval %.0fms -> %.0fms",
                self._max_concurrent,
                config.max_concurrent,
                self._rate_limit_interval_ms,
                config.rate_limit_interval_ms,
            )
        self.rate_limit_interval_ms = config.rate_limit_interval_ms
        self.max_concurrent = config.max_concurrent

    def submit(self, operation: Callable[[], Awaitable[T]], priority: float = 0) -> asyncio.Future[T]:
        """Queue an operation and return a future settled with its outcome.

        Args:
            operation (Callable[[], Awaitable[T]]): Zero-argument coroutine function.
            priority (float): Higher values dispatch first; ties keep arrival order.

        Returns:
            asyncio.Future[T]: Resolved with the result, or rejected with the operation's exception.
        """
        future: asyncio.Future[T] = self._enqueue(operation, priority)
        self._dispatch()
        return future

    async def submit_all(self, operations: Sequence[Callable[[], Awaitable[T]]]) -> list[T]:
        """Queue all operations, earlier ones with higher priority, and wait for every result.

        All operations are queued before the first dispatch so their relative order is respected.

        Raises:
            Exception: The first exception raised by any operation. The others keep running.
        """
        total: int = len(operations)
        futures: list[asyncio.Future[T]] = [
            self._enqueue(operation, total - index) for index, operation in enumerate(operations)
        ]
        self._dispatch()
        return list(await asyncio.gather(*futures))

    def status(self) -> PoolStatus:
        return PoolStatus(running=self._running, queued=len(self._queue))

    async def wait_for_all(self) -> None:
        """Wait until nothing is running or queued."""
        await self._idle.wait()

    def _enqueue(self, operation: Callable[[], Awaitable[T]], priority: float) -> asyncio.Future[T]:
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._queue, _PoolItem((-priority, next(self._sequence)), operation, future))
        self._idle.clear()
        return future

    def _dispatch(self) -> None:
        while self._running < self._max_concurrent and self._queue:
            item: _PoolItem = heapq.heappop(self._queue)
            if item.future.done():
                # cancelled by the caller while waiting
                continue
            self._running += 1
            task: asyncio.Task[None] = asyncio.get_running_loop().create_task(
                self._run(item, self._rate_limit_interval_ms)
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        self._update_idle()

    async def _run(self, item: _PoolItem, delay_ms: float) -> None:
        try:
            if delay_ms > 0:
                await asyncio.sleep(delay_ms / 1000)
            if self.rate_limiter is not None:
                await self.rate_limiter.wait_for_slot()
            result: Any = await item.operation()
        except asyncio.CancelledError:
            if not item.future.done():
                item.future.cancel()
            raise
        except Exception as err:
            if not item.future.done():
                item.future.set_exception(err)
        else:
            if not item.future.done():
                item.future.set_result(result)
        finally:
            self._running -= 1
            self._dispatch()

    def _update_idle(self) -> None:
        if self._running == 0 and not self._queue:
            self._idle.set()
        else:
            self._idle.clear()
