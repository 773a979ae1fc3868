"""Per-service concurrency profiles.

Every supported translation service has one profile: the configuration the pipeline starts with
and the bounds adaptive adjustment must stay within.
"""

from __future__ import annotations

from enum import StrEnum
from typing import assert_never

from models.concurrency_models import ConcurrencyBounds, ConcurrencyConfig, ServiceProfile

__all__: list[str] = ["TranslationService", "get_service_profile"]


class TranslationService(StrEnum):
    GOOGLE = "google"
    GEMINI = "gemini"
    LIBRETRANSLATE = "libretranslate"


def get_service_profile(service: TranslationService) -> ServiceProfile:
    """Return the profile of ``service``.

    Args:
        service (TranslationService): Target service.

    Returns:
        ServiceProfile: A new profile instance; the caller may keep it.
    """
    match service:
        case TranslationService.GOOGLE:
            return ServiceProfile(
                base_config=ConcurrencyConfig(
                    max_concurrent=3, rate_limit_interval_ms=200, backoff_factor=1.5, health_check_interval_ms=10000
                ),
                bounds=ConcurrencyBounds(
                    min_concurrent=1, max_concurrent=8, min_rate_limit_ms=100, max_rate_limit_ms=2000
                ),
            )
        case TranslationService.GEMINI:
            return ServiceProfile(
                base_config=ConcurrencyConfig(
                    max_concurrent=5, rate_limit_interval_ms=100, backoff_factor=1.3, health_check_interval_ms=8000
                ),
                bounds=ConcurrencyBounds(
                    min_concurrent=1, max_concurrent=10, min_rate_limit_ms=50, max_rate_limit_ms=1000
                ),
            )
        case TranslationService.LIBRETRANSLATE:
            return ServiceProfile(
                base_config=ConcurrencyConfig(
                    max_concurrent=2, rate_limit_interval_ms=500, backoff_factor=2.0, health_check_interval_ms=15000
                ),
                bounds=ConcurrencyBounds(
                    min_concurrent=1, max_concurrent=5, min_rate_limit_ms=200, max_rate_limit_ms=3000
                ),
            )
        case _:
            assert_never(service)
