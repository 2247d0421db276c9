"""Namespaced logging setup shared by every VoiceFeed module.

Modules call ``LoggerUtils.get_logger(__name__)`` at import time; the entry point creates a single
``LoggerUtils`` instance to attach the console and rotating file handlers to the namespace root.
"""

from __future__ import annotations

import logging
import sys
import warnings
from logging import Formatter, NullHandler, StreamHandler
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, ClassVar, Final, Literal, NamedTuple, Self, TextIO, TypeAlias

if TYPE_CHECKING:
    from pathlib import Path

__all__: list[str] = ["LogLevel", "LoggerUtils"]

LevelType: TypeAlias = Literal[
    "NOTSET",
    "DEBUG",
    "INFO",
    "WARNING",
    "ERROR",
    "CRITICAL",
]

_LOG_FILE_SIZE: Final[int] = 1 * 1024 * 1024  # 1MB
_LOG_BACKUP_COUNT: Final[int] = 3

DEFAULT_LOG_LEVEL: Final[int] = logging.INFO
DEFAULT_NAMESPACE: Final[str] = "VoiceFeed"


class LogLevel(NamedTuple):
    """Name and numeric value of a logging level."""

    name: str
    value: int


class LoggerUtils:
    """Singleton that configures the VoiceFeed logger hierarchy.

    Console output is kept at WARNING so that translation fallbacks stay quiet,
    while the optional log file records everything down to DEBUG.

    Attributes:
        _LOGGER_NAMESPACE (str): Prefix of every logger handed out by ``get_logger``.
        _configured (bool): Set once handlers are attached; later instances are no-ops.
        _instance (LoggerUtils | None): The singleton instance.
    """

    _LOGGER_NAMESPACE: ClassVar[str] = DEFAULT_NAMESPACE
    _configured: ClassVar[bool] = False
    _instance: ClassVar[Self | None] = None

    def __new__(cls, *args, **kwargs) -> Self:
        _ = args, kwargs
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, filename: str | Path = "", *, use_null_console: bool = False) -> None:
        """Attach handlers to the namespace root logger.

        Args:
            filename (str | Path): Absolute path of the log file. Empty disables file logging.
            use_null_console (bool): Replace the console handler with a NullHandler (e.g. under pythonw).
        """
        if LoggerUtils._configured:
            return

        self.root_logger: logging.Logger = logging.getLogger(self._LOGGER_NAMESPACE)
        self._use_null_console: bool = bool(use_null_console) or sys.stderr is None
        filename = str(filename)
        # The logger level must not be stricter than the handler levels.
        self.root_logger.setLevel(DEFAULT_LOG_LEVEL)

        self._console_logging()
        if filename.strip():
            self._file_logging(filename)
        else:
            self.root_logger.debug("No log file configured; file logging disabled.")

        warnings.showwarning = self.warning_to_log
        LoggerUtils._configured = True

    def warning_to_log(
        self,
        message: Warning | str,
        category: type[Warning],
        filename: str,
        lineno: int,
        file: TextIO | None = None,
        line: str | None = None,
    ) -> None:
        """Route ``warnings.warn`` output into the log (signature of ``warnings.showwarning``)."""
        _ = file, line
        self.root_logger.warning("%s:%d: %s: %s", filename, lineno, category.__name__, message)

    @classmethod
    def initialize(cls, namespace: str) -> None:
        """Change the logger namespace before the first configuration.

        Raises:
            RuntimeError: If handlers have already been attached.
        """
        if cls._configured:
            msg = "LoggerUtils is already configured. Reinitialization is not allowed."
            raise RuntimeError(msg)
        cls._LOGGER_NAMESPACE = namespace

    def _console_logging(self) -> None:
        if self._use_null_console:
            if not self._has_handler(NullHandler):
                self.root_logger.addHandler(NullHandler())
            return

        if self._has_handler(StreamHandler):
            self.root_logger.warning("Console logging is already configured.")
            return

        console_handler: StreamHandler[TextIO] = StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(Formatter("%(levelname)s: %(message)s"))
        self.root_logger.addHandler(console_handler)

    def _file_logging(self, filename: str) -> None:
        if self._has_handler(RotatingFileHandler):
            self.root_logger.warning("File logging is already configured.")
            return

        try:
            file_handler = RotatingFileHandler(
                filename=filename,
                maxBytes=_LOG_FILE_SIZE,
                backupCount=_LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except (FileNotFoundError, PermissionError):
            self.root_logger.error("Cannot open log file: %s. Logging to the file is not performed.", filename)
            return

        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            Formatter("%(asctime)s %(levelname)-8s %(lineno)4d %(name)-40s\t%(funcName)s\t%(message)s")
        )
        self.root_logger.addHandler(file_handler)

    def _has_handler(self, handler_type: type) -> bool:
        return any(isinstance(h, handler_type) for h in self.root_logger.handlers)

    def set_level(self, level: LevelType) -> None:
        """Set the namespace root level, falling back to INFO for unknown names."""
        level_map: dict[str, int] = logging.getLevelNamesMapping()
        try:
            self.root_logger.setLevel(level_map[level.upper()])
        except KeyError:
            self.root_logger.setLevel(DEFAULT_LOG_LEVEL)
            self.root_logger.warning("Unknown logging level '%s' specified. Logging level set to 'INFO'.", level)

    def get_level(self) -> LogLevel:
        """Return the effective level of the namespace root logger."""
        level_value: int = self.root_logger.getEffectiveLevel()
        return LogLevel(name=logging.getLevelName(level_value), value=level_value)

    @staticmethod
    def get_logger(name: str | None = None) -> logging.Logger:
        """Return ``<namespace>.<name>``, or the namespace root when ``name`` is None."""
        if LoggerUtils._LOGGER_NAMESPACE:
            full_name: str | None = f"{LoggerUtils._LOGGER_NAMESPACE}.{name}" if name else LoggerUtils._LOGGER_NAMESPACE
        else:
            full_name = name or None
        return logging.getLogger(full_name)
