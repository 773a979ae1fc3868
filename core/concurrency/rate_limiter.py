"""Sliding-window rate limiting for outbound translation calls.

The limiter admits at most ``max_requests`` operations per trailing window and makes callers wait,
in bounded steps, until the oldest admission leaves the window.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

__all__: list[str] = ["RateLimitStatus", "SlidingWindowRateLimiter"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


@dataclass(frozen=True)
class RateLimitStatus:
    """Current usage of the sliding window.

    Attributes:
        current (int): Slots taken inside the window.
        max (int): Window capacity.
        reset_in_ms (float): Time until the oldest slot leaves the window (0 when empty).
    """

    current: int
    max: int
    reset_in_ms: float


class SlidingWindowRateLimiter:
    """Caps outbound operations to ``max_requests`` per trailing ``window_sec``.

    Attributes:
        WAIT_SLACK_SEC (ClassVar[float]): Added to each computed wait so the oldest slot has left the window.
        MAX_WAIT_STEP_SEC (ClassVar[float]): Longest single sleep before the window is re-checked.
    """

    WAIT_SLACK_SEC: ClassVar[float] = 0.1
    MAX_WAIT_STEP_SEC: ClassVar[float] = 1.0

    def __init__(self, max_requests: int, window_sec: float) -> None:
        if max_requests < 1:
            msg: str = f"max_requests must be at least 1: {max_requests}"
            raise ValueError(msg)
        if window_sec <= 0:
            msg = f"window_sec must be positive: {window_sec}"
            raise ValueError(msg)
        self.max_requests: int = max_requests
        self.window_sec: float = window_sec
        self._timestamps: deque[float] = deque()

    def _now(self) -> float:
        return time.monotonic()

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.window_sec:
            self._timestamps.popleft()

    async def wait_for_slot(self) -> None:
        """Suspend until a slot is free inside the window, then take it."""
        while True:
            now: float = self._now()
            self._prune(now)
            if len(self._timestamps) < self.max_requests:
                self._timestamps.append(now)
                return

            wait_sec: float = self._timestamps[0] + self.window_sec - now
            wait_sec = min(max(wait_sec, 0.0) + self.WAIT_SLACK_SEC, self.MAX_WAIT_STEP_SEC)
            logger.debug(
                "Rate limit reached (%d/%d); waiting %.3f sec", len(self._timestamps), self.max_requests, wait_sec
            )
            await asyncio.sleep(wait_sec)

    def status(self) -> RateLimitStatus:
        now: float = self._now()
        self._prune(now)
        reset_in_sec: float = self._timestamps[0] + self.window_sec - now if self._timestamps else 0.0
        return RateLimitStatus(
            current=len(self._timestamps),
            max=self.max_requests,
            reset_in_ms=max(0.0, reset_in_sec * 1000),
        )
