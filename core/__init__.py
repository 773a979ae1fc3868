"""Core components of the batch translation pipeline.

This package contains the shared data container, the translation cache, concurrency control
(work pool, rate limiter, adaptive manager), and the batch translation orchestrator.
"""

from core.shared_data import SharedData

__all__: list[str] = ["SharedData"]
