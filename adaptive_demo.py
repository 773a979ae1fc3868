"""Adaptive concurrency demonstration.

Runs the batch translation pipeline against a simulated translation service and prints how the
adaptive manager tunes concurrency and dispatch interval as the simulated conditions change.

This is a console-only application. Logging goes to stderr (warnings and above) and, when
configured, to the log file named in the INI file.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Final, NoReturn

from config.loader import ConfigLoader, ConfigLoaderError
from core.concurrency.profiles import TranslationService
from core.shared_data import SharedData
from core.trans.simulated import SimulatedTranslator
from models.batch_models import TranslationEntry
from models.config_models import Config
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    from models.batch_models import BatchResult

CFG_FILE: Final[str] = "translator.ini"

# (label, latency ms, error rate) per phase of the scenario run.
SCENARIO_PHASES: Final[list[tuple[str, float, float]]] = [
    ("good", 200.0, 0.01),
    ("excellent", 100.0, 0.005),
    ("degraded", 800.0, 0.15),
    ("critical", 2000.0, 0.4),
]


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        print(f"\n{message}\n", file=sys.stderr)
        self.print_help(sys.stderr)
        raise SystemExit(2)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed arguments.
    """
    parser = _ArgumentParser(
        description="Run the batch translation pipeline against a simulated service",
        epilog="Example: python adaptive_demo.py --service gemini --items 40 --latency-ms 150 --error-rate 0.02",
    )
    parser.add_argument("--config", dest="config", default=CFG_FILE, metavar="INI_FILE", help="Configuration file")
    parser.add_argument(
        "--service",
        dest="service",
        choices=[service.value for service in TranslationService],
        help="Override the translation service profile",
    )
    parser.add_argument("--items", dest="items", type=int, default=50, help="Number of entries per batch")
    parser.add_argument("--latency-ms", dest="latency_ms", type=float, default=200.0, help="Simulated response time")
    parser.add_argument("--error-rate", dest="error_rate", type=float, default=0.02, help="Simulated failure rate")
    parser.add_argument(
        "--scenario", dest="scenario", action="store_true", help="Run the four-phase good-to-critical scenario"
    )
    parser.add_argument("--debug", dest="debug", action="store_true", help="Enable debug logging")
    args: argparse.Namespace = parser.parse_args(argv)
    if args.items < 1:
        parser.error("--items must be at least 1")
    return args


def load_config(args: argparse.Namespace) -> Config:
    """Load the configuration file and apply CLI overrides. Defaults are used when the file is absent.

    Raises:
        ConfigLoaderError: If the configuration file exists but cannot be loaded.
    """
    if not Path(args.config).exists():
        config = Config()
        if args.service is not None:
            config.TRANSLATION.SERVICE = args.service
        if args.debug:
            config.GENERAL.DEBUG = True
            config.GENERAL.LOG_LEVEL = "DEBUG"
        return config

    script_name: str = Path(sys.argv[0]).stem
    return ConfigLoader(
        config_filename=args.config, script_name=script_name, service=args.service, debug=args.debug
    ).config


def build_entries(count: int, offset: int = 0) -> list[TranslationEntry]:
    """Create sample entries; every fifth text repeats an earlier one."""
    entries: list[TranslationEntry] = []
    for index in range(offset, offset + count):
        text_no: int = index - 1 if index % 5 == 4 else index
        entries.append(TranslationEntry(key=f"demo.key_{index}", text=f"Sample text {text_no}: this is a demo string."))
    return entries


def print_batch_summary(label: str, result: BatchResult, shared: SharedData) -> None:
    stats = shared.adaptive_manager.get_performance_stats()
    print(f"\n[{label}]")
    print(f"  keys: {len(result.results)}  failed: {result.total_failed}  success: {result.success}")
    print(f"  unique texts: {result.unique_texts}  cache hits: {result.cache_hits}  api calls: {result.api_calls}")
    print(f"  network status: {stats.current.status}")
    print(f"  concurrency: {stats.config.max_concurrent}  interval: {stats.config.rate_limit_interval_ms:.0f}ms")


async def run(args: argparse.Namespace, config: Config) -> None:
    translator = SimulatedTranslator(args.latency_ms, args.error_rate, config.TRANSLATION.TARGET_LANGUAGE)

    async with SharedData(config) as shared:
        print(f"Service: {shared.adaptive_manager.service}")
        initial = shared.adaptive_manager.get_current_config()
        print(f"Initial concurrency: {initial.max_concurrent}  interval: {initial.rate_limit_interval_ms:.0f}ms")

        if args.scenario:
            for phase_no, (label, latency_ms, error_rate) in enumerate(SCENARIO_PHASES):
                translator.set_condition(latency_ms, error_rate)
                result = await shared.orchestrator.translate_batch(
                    build_entries(args.items, offset=phase_no * args.items), translator
                )
                print_batch_summary(label, result, shared)
        else:
            result = await shared.orchestrator.translate_batch(
                build_entries(args.items),
                translator,
                on_progress=lambda percent: print(f"\r  progress: {percent:3d}%", end="", flush=True),
            )
            print()
            print_batch_summary("batch", result, shared)

        processor = shared.orchestrator.get_stats()
        cache = await shared.cache_manager.get_stats()
        condition = shared.adaptive_manager.evaluate_network_condition()
        print("\nFinal statistics")
        print(
            f"  processed: {processor.processed}  failed: {processor.failed}  "
            f"cached: {processor.cached}  api calls: {processor.api_calls}"
        )
        print(f"  average response: {condition.average_response_time_ms:.0f}ms  error rate: {condition.error_rate:.1%}")
        print(f"  cache entries: {cache.total_entries}  hit rate: {cache.hit_rate:.1f}%")
        print(f"  simulated requests: {translator.request_count}")


def main(argv: list[str] | None = None) -> int:
    args: argparse.Namespace = parse_arguments(argv)
    try:
        config: Config = load_config(args)
    except ConfigLoaderError as err:
        print("\nError: Failed to load configuration file.", file=sys.stderr)
        print(f"Details: {err}", file=sys.stderr)
        return 1

    LoggerUtils(config.GENERAL.LOG_FILE).set_level(config.GENERAL.LOG_LEVEL)

    try:
        asyncio.run(run(args, config))
    except ValueError as err:
        print(f"\nError: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nDemo cancelled by user.", file=sys.stderr)
