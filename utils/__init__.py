"""Utility modules for the translation pipeline.

This package provides logging configuration and string helpers.
"""

from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

__all__: list[str] = ["LoggerUtils", "StringUtils"]
