"""Configuration file loader and validator.

Handles reading, formatting, and validating settings from the INI configuration file.
Raises exceptions for any issues encountered during loading.
"""

from __future__ import annotations

import ast
import configparser
from configparser import ConfigParser
from dataclasses import fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

from core.concurrency.profiles import TranslationService
from models.config_models import Config
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable
    from dataclasses import Field as DataclassField
else:
    from dataclasses import Field as DataclassField

__all__: list[str] = [
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ConfigLoader",
    "ConfigLoaderError",
    "ConfigTypeError",
    "ConfigValueError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

# Settings that must be strictly positive, as (section, key).
POSITIVE_SETTINGS: list[tuple[str, str]] = [
    ("RATE_LIMIT", "WINDOW_SEC"),
    ("CACHE", "MAX_ENTRIES"),
    ("CACHE", "MAX_STORAGE_BYTES"),
    ("CACHE", "TTL_SEC"),
    ("CHUNKING", "LENGTH_PENALTY_STEP"),
    ("CHUNKING", "BATCH_SIZE_FACTOR"),
    ("ADAPTIVE", "HISTORY_SIZE"),
    ("ADAPTIVE", "EVALUATION_WINDOW"),
    ("ADAPTIVE", "SPEEDUP_FACTOR"),
    ("ADAPTIVE", "SLOWDOWN_FACTOR"),
]

# Settings that must not be negative, as (section, key).
NON_NEGATIVE_SETTINGS: list[tuple[str, str]] = [
    ("RATE_LIMIT", "MAX_REQUESTS"),
    ("CACHE", "STORAGE_QUOTA_BYTES"),
    ("CACHE", "FLUSH_DELAY_SEC"),
    ("CACHE", "SWEEP_INTERVAL_SEC"),
    ("CACHE", "EVICTION_HIT_WEIGHT_SEC"),
    ("ADAPTIVE", "COOLDOWN_SEC"),
    ("ADAPTIVE", "RATE_DEAD_BAND_MS"),
]


class ConfigLoaderError(Exception):
    """An error occurred while processing the configuration file."""


class ConfigFileNotFoundError(ConfigLoaderError):
    """The specified configuration file does not exist."""


class ConfigFormatError(ConfigLoaderError):
    """The configuration file is not formatted correctly."""


class ConfigValueError(ConfigFormatError):
    """The configuration file contains an invalid value."""


class ConfigTypeError(ConfigFormatError):
    """The configuration file contains an invalid type."""


class ConfigLoader:
    """Handles loading and validation of configuration settings.

    This class reads the configuration file, applies formatting rules, and validates settings.
    It raises exceptions for any issues encountered during the loading process.

    Args:
        config_filename (str): INI file name to load.
        script_name (str): Executing script name, used in error messaging.
        debug (bool): Optional override forcing debug mode.
        service (str | None): Optional override for the translation service.

    Raises:
        ConfigFileNotFoundError: If the configuration file does not exist.
        ConfigFormatError: If the file cannot be parsed or contains invalid values/types.
    """

    def __init__(
        self,
        *,
        config_filename: str,
        script_name: str,
        **args,
    ) -> None:
        config_path = Path(config_filename)
        msg: str
        if not config_path.exists():
            msg = (
                f"Configuration file '{config_filename}' not found. "
                f"Please create '{config_filename}' in the same directory as '{script_name}'."
            )
            raise ConfigFileNotFoundError(msg)

        parser: ConfigParser = ConfigParser()

        try:
            parser.read(config_filename, encoding="utf-8")
        except configparser.Error as err:
            msg = f"Failed to parse configuration file '{config_filename}': {err}"
            raise ConfigFormatError(msg) from None

        self.config = Config()
        self._convert_settings(parser)
        # Apply command-line argument overrides
        if args.get("service") is not None:
            self.config.TRANSLATION.SERVICE = args["service"]
        if args.get("debug", False):
            self.config.GENERAL.DEBUG = True
        self._validate_settings()

    def _convert_settings(self, parser: ConfigParser) -> None:
        """Convert configuration settings from the parser to the Config object.

        Args:
            parser (ConfigParser): Parsed INI data.

        Raises:
            ConfigFormatError: If a value cannot be parsed or coerced to the expected type.
        """
        formatter = _ConfigFormatter(self.config, parser)
        for section in fields(self.config):
            if not parser.has_section(section.name):
                logger.debug("Section '%s' not defined; using defaults", section.name)
                continue
            self._convert_section_field(parser, formatter, section)

    def _convert_section_field(
        self, parser: ConfigParser, formatter: _ConfigFormatter, section: DataclassField[Any]
    ) -> None:
        """Convert all fields in a configuration section.

        Args:
            parser (ConfigParser): Parsed INI data.
            formatter (_ConfigFormatter): Formatter used to coerce string values to typed values.
            section (Field[Any]): Target configuration section dataclass field.

        Raises:
            ConfigFormatError: If a value fails to format correctly.
        """
        for key in fields(getattr(self.config, section.name)):
            if not parser.has_option(section.name, key.name):
                logger.debug("Skipping undefined setting: '%s.%s'", section.name, key.name)
                continue

            formatted_value = formatter.apply_format(section, key)
            setattr(getattr(self.config, section.name), key.name, formatted_value)

    def _validate_settings(self) -> None:
        """Validate the translation service, numeric limits, and log level.

        Raises:
            ConfigFormatError: If validation fails for any setting.
        """
        self._validate_service("TRANSLATION", "SERVICE")
        for section_name, key_name in POSITIVE_SETTINGS:
            self._validate_number(section_name, key_name, allow_zero=False)
        for section_name, key_name in NON_NEGATIVE_SETTINGS:
            self._validate_number(section_name, key_name, allow_zero=True)
        self._validate_ratio("CACHE", "SWEEP_THRESHOLD_RATIO")
        if self.config.GENERAL.DEBUG:
            self.config.GENERAL.LOG_LEVEL = "DEBUG"

    def _validate_service(self, section_name: str, key_name: str) -> None:
        """Normalize the service name and verify it names a supported service.

        Raises:
            ConfigTypeError: If the value is not a string.
            ConfigValueError: If the service is not supported.
        """
        value: Any = getattr(getattr(self.config, section_name), key_name)
        field_name: str = f"{section_name}.{key_name}"

        if not isinstance(value, str):
            msg: str = f"Unsupported type used for '{field_name}': {type(value)}"
            raise ConfigTypeError(msg)
        normalized: str = value.strip().lower()
        allowed: list[str] = [service.value for service in TranslationService]
        if normalized not in allowed:
            msg = f"Unknown value '{value}' is set for '{field_name}'. Allowed: {', '.join(allowed)}"
            raise ConfigValueError(msg)
        setattr(getattr(self.config, section_name), key_name, normalized)

    def _validate_number(self, section_name: str, key_name: str, *, allow_zero: bool) -> None:
        """Verify that a numeric setting is positive (or non-negative).

        Raises:
            ConfigValueError: If the value is out of range.
        """
        value: int | float = getattr(getattr(self.config, section_name), key_name)
        if value > 0 or (allow_zero and value == 0):
            return
        requirement: str = "must not be negative" if allow_zero else "must be positive"
        msg: str = f"'{section_name}.{key_name}' {requirement}: {value}"
        raise ConfigValueError(msg)

    def _validate_ratio(self, section_name: str, key_name: str) -> None:
        value: float = getattr(getattr(self.config, section_name), key_name)
        if not 0.0 < value <= 1.0:
            msg: str = f"'{section_name}.{key_name}' must be in (0, 1]: {value}"
            raise ConfigValueError(msg)


class _ConfigFormatter:
    """Converts INI string values to typed Python objects (bool, int, float, str, list, dict)."""

    def __init__(self, config: Config, parser: ConfigParser) -> None:
        self.config: Config = config
        self.parser: ConfigParser = parser

    def apply_format(self, section: DataclassField[Any], key: DataclassField[Any]) -> Any:
        """Convert INI value to the expected Python type based on the Config field type.

        Args:
            section (DataclassField[Any]): Configuration section field containing the key.
            key (DataclassField[Any]): Target field within the section.

        Returns:
            Any: Parsed value coerced to the type declared in the config dataclass.

        Raises:
            ConfigValueError: If a value cannot be coerced to the expected type.
            ConfigFormatError: If literal evaluation fails due to invalid syntax.
            ConfigTypeError: If an unexpected type is encountered during coercion.
        """
        formatters: dict[type, Callable[[DataclassField[Any], DataclassField[Any]], bool | int | float | str]] = {
            bool: self.parse_as_boolean,
            int: self.parse_as_integer,
            float: self.parse_as_float,
            str: self.parse_as_string,
        }

        formatter: Callable[[DataclassField[Any], DataclassField[Any]], bool | int | float | str] | None = (
            formatters.get(type(getattr(getattr(self.config, section.name), key.name)))
        )
        if formatter:
            try:
                return formatter(section, key)
            except ValueError as err:
                msg = f"Invalid value for {section.name}.{key.name}: {err}"
                raise ConfigValueError(msg) from err
            except TypeError as err:
                msg = f"Invalid value for {section.name}.{key.name}: {err}"
                raise ConfigTypeError(msg) from err

        value_str: str = self.parser[section.name][key.name]
        try:
            return ast.literal_eval(value_str)
        except ValueError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigValueError(msg) from err
        except SyntaxError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigFormatError(msg) from err

    def parse_as_float(self, section: DataclassField[Any], key: DataclassField[Any]) -> float:
        """Convert INI string to float."""
        value: str = self.parser.get(section.name, key.name)
        for char in ("'", '"', "%"):
            value = value.removeprefix(char).removesuffix(char)
        return float(value)

    def parse_as_integer(self, section: DataclassField[Any], key: DataclassField[Any]) -> int:
        """Convert INI string to integer."""
        value: str = self.parser.get(section.name, key.name)
        for char in ("'", '"', "%"):
            value = value.removeprefix(char).removesuffix(char)
        return int(float(value))

    def parse_as_boolean(self, section: DataclassField[Any], key: DataclassField[Any]) -> bool:
        """Convert INI string to boolean."""
        return self.parser.getboolean(section.name, key.name)

    def parse_as_string(self, section: DataclassField[Any], key: DataclassField[Any]) -> str:
        """Return the INI string with one pair of surrounding quotes removed."""
        value: str = self.parser.get(section.name, key.name).strip()
        for char in ("'", '"'):
            if len(value) >= 2 and value.startswith(char) and value.endswith(char):
                return value[1:-1]
        return value
