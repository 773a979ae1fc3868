from __future__ import annotations

from textwrap import dedent
from typing import TYPE_CHECKING

import pytest

import adaptive_demo
from adaptive_demo import build_entries, load_config, main, parse_arguments

if TYPE_CHECKING:
    from pathlib import Path


def test_parse_arguments_defaults() -> None:
    args = parse_arguments([])

    assert args.config == "translator.ini"
    assert args.service is None
    assert args.items == 50
    assert args.scenario is False


def test_parse_arguments_rejects_unknown_service(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        parse_arguments(["--service", "deepl"])

    assert exc_info.value.code == 2
    assert "usage" in capsys.readouterr().err


def test_parse_arguments_rejects_zero_items() -> None:
    with pytest.raises(SystemExit):
        parse_arguments(["--items", "0"])


def test_build_entries_repeats_every_fifth_text() -> None:
    entries = build_entries(10)

    assert len({entry.key for entry in entries}) == 10
    assert entries[4].text == entries[3].text
    assert entries[9].text == entries[8].text
    assert len({entry.text for entry in entries}) == 8


def test_load_config_defaults_when_file_is_missing(tmp_path: Path) -> None:
    args = parse_arguments(["--config", str(tmp_path / "absent.ini"), "--service", "gemini", "--debug"])

    config = load_config(args)

    assert config.TRANSLATION.SERVICE == "gemini"
    assert config.GENERAL.LOG_LEVEL == "DEBUG"


def test_main_reports_invalid_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    ini_path: Path = tmp_path / "translator.ini"
    ini_path.write_text("[TRANSLATION]\nSERVICE = deepl\n", encoding="utf-8")

    assert main(["--config", str(ini_path)]) == 1
    assert "Failed to load configuration file" in capsys.readouterr().err


def test_main_runs_batch(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    ini_path: Path = tmp_path / "translator.ini"
    ini_path.write_text(
        dedent(
            """
            [CACHE]
            STORAGE_PATH = ":memory:"
            """
        ),
        encoding="utf-8",
    )

    exit_code: int = main(["--config", str(ini_path), "--items", "5", "--latency-ms", "0", "--error-rate", "0"])

    out: str = capsys.readouterr().out
    assert exit_code == 0
    assert "keys: 5  failed: 0  success: True" in out
    assert "simulated requests: 4" in out


def test_main_runs_scenario(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(adaptive_demo, "SCENARIO_PHASES", [("fast", 0.0, 0.0), ("broken", 0.0, 1.0)])
    monkeypatch.chdir(tmp_path)

    exit_code: int = main(["--config", "absent.ini", "--items", "3", "--scenario"])

    out: str = capsys.readouterr().out
    assert exit_code == 0
    assert "[fast]" in out
    assert "[broken]" in out
    assert "failed: 3  success: False" in out
