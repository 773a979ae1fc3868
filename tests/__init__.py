"""Unit tests for the translation pipeline.

Tests use pytest with asyncio support; time-dependent behavior is controlled via monkeypatch.
"""
