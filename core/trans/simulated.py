"""Simulated translation service for demonstrations and load experiments."""

from __future__ import annotations

import asyncio
import random
from typing import TYPE_CHECKING

from core.trans.interface import NetworkFailureError
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

__all__: list[str] = ["SimulatedTranslator"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class SimulatedTranslator:
    """Translate-one callable with configurable latency and failure rate.

    Each call sleeps ``latency_ms`` and then fails with probability ``error_rate``. Successful
    results tag the text with the target language and the request number.

    Args:
        latency_ms (float): Simulated response time.
        error_rate (float): Failure probability in [0, 1].
        target_lang (str): Language tag put into results.
        seed (int | None): Seed for reproducible failures.
    """

    def __init__(
        self, latency_ms: float = 200.0, error_rate: float = 0.0, target_lang: str = "ja", seed: int | None = None
    ) -> None:
        self.latency_ms: float = 0.0
        self.error_rate: float = 0.0
        self.target_lang: str = target_lang
        self.request_count: int = 0
        self._random: random.Random = random.Random(seed)  # noqa: S311
        self.set_condition(latency_ms, error_rate)

    def set_condition(self, latency_ms: float, error_rate: float) -> None:
        """Change latency and failure rate for subsequent calls.

        Raises:
            ValueError: If a value is out of range.
        """
        if latency_ms < 0:
            msg: str = f"latency_ms must not be negative: {latency_ms}"
            raise ValueError(msg)
        if not 0.0 <= error_rate <= 1.0:
            msg = f"error_rate must be between 0 and 1: {error_rate}"
            raise ValueError(msg)
        self.latency_ms = latency_ms
        self.error_rate = error_rate
        logger.info("Simulated service condition: %.0fms response, %.1f%% error rate", latency_ms, error_rate * 100)

    async def __call__(self, text: str) -> str:
        self.request_count += 1
        request_no: int = self.request_count
        await asyncio.sleep(self.latency_ms / 1000)
        if self._random.random() < self.error_rate:
            msg: str = f"Simulated service error (request #{request_no})"
            raise NetworkFailureError(msg)
        return f"[{self.target_lang}] {text} ({request_no})"

    def reset(self) -> None:
        self.request_count = 0
