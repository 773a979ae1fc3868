from __future__ import annotations

import logging
import warnings
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

import pytest

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def fresh_logger_utils(monkeypatch: pytest.MonkeyPatch, request: pytest.FixtureRequest) -> Iterator[str]:
    """Reset the singleton and use a namespace unique to the test."""
    namespace: str = f"LoggerUtilsTest.{request.node.name}"
    monkeypatch.setattr(LoggerUtils, "_instance", None)
    monkeypatch.setattr(LoggerUtils, "_configured", False)
    monkeypatch.setattr(LoggerUtils, "_LOGGER_NAMESPACE", namespace)
    monkeypatch.setattr(warnings, "showwarning", warnings.showwarning)
    yield namespace
    root: logging.Logger = logging.getLogger(namespace)
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


def test_singleton_configures_once(fresh_logger_utils: str) -> None:
    first = LoggerUtils(use_null_console=True)
    second = LoggerUtils("ignored.log")

    assert first is second
    assert len(logging.getLogger(fresh_logger_utils).handlers) == 1


def test_file_logging_attaches_rotating_handler(fresh_logger_utils: str, tmp_path: Path) -> None:
    log_file: Path = tmp_path / "translator.log"

    LoggerUtils(log_file, use_null_console=True)
    LoggerUtils.get_logger("core.cache").warning("cache warning")

    handlers = logging.getLogger(fresh_logger_utils).handlers
    assert any(isinstance(handler, RotatingFileHandler) for handler in handlers)
    for handler in handlers:
        handler.flush()
    assert "cache warning" in log_file.read_text(encoding="utf-8")


def test_get_logger_is_namespaced(fresh_logger_utils: str) -> None:
    assert LoggerUtils.get_logger("core.trans").name == f"{fresh_logger_utils}.core.trans"
    assert LoggerUtils.get_logger().name == fresh_logger_utils


def test_set_level_falls_back_to_info(fresh_logger_utils: str) -> None:
    utils = LoggerUtils(use_null_console=True)

    utils.set_level("debug")
    assert logging.getLogger(fresh_logger_utils).level == logging.DEBUG

    utils.set_level("chatty")
    assert logging.getLogger(fresh_logger_utils).level == logging.INFO


def test_warnings_are_routed_to_the_logger(fresh_logger_utils: str, caplog: pytest.LogCaptureFixture) -> None:
    LoggerUtils(use_null_console=True)

    with caplog.at_level(logging.WARNING, logger=fresh_logger_utils):
        warnings.showwarning("deprecated option", UserWarning, "translator.py", 12)

    assert "deprecated option" in caplog.text
