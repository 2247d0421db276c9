"""Utility modules for VoiceFeed.

This package provides the logging setup, string helpers and file helpers used throughout the application.
"""

from utils.file_utils import FileUtils
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

__all__: list[str] = ["FileUtils", "LoggerUtils", "StringUtils"]
