"""Batch translation.

This package provides the translate-one contract and error taxonomy, the unit planner that
deduplicates and batches requests, the batch orchestrator, and a simulated service.
"""

from core.trans.interface import (
    ErrorKind,
    MalformedResponseError,
    NetworkFailureError,
    TranslateExceptionError,
    TranslateOne,
    TranslationQuotaExceededError,
    TranslationRateLimitError,
    VendorRejectedError,
    classify_error,
)
from core.trans.orchestrator import BatchTranslationOrchestrator
from core.trans.planner import UnitPlanner
from core.trans.simulated import SimulatedTranslator

__all__: list[str] = [
    "BatchTranslationOrchestrator",
    "ErrorKind",
    "MalformedResponseError",
    "NetworkFailureError",
    "SimulatedTranslator",
    "TranslateExceptionError",
    "TranslateOne",
    "TranslationQuotaExceededError",
    "TranslationRateLimitError",
    "UnitPlanner",
    "VendorRejectedError",
    "classify_error",
]
