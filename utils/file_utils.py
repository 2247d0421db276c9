from __future__ import annotations

import os
import tempfile
from pathlib import Path

__all__: list[str] = [
    "FileMissingError",
    "FileUtils",
    "FileUtilsError",
    "InvalidFileTypeError",
    "UnsupportedFileFormatError",
]


class FileUtils:
    """Path helpers for the files VoiceFeed reads and writes."""

    @staticmethod
    def resolve_path(path: str | Path, *, strict: bool = False) -> Path:
        """Convert a user-input path to an absolute path.

        Expands environment variables and ``~``, and resolves relative paths against the current
        working directory.

        Args:
            path (str | Path): The input path (e.g., "~/voicefeed/$FEED.json").
            strict (bool): Whether to raise an exception if the path does not exist. Defaults to False.

        Returns:
            Path: The absolute path.
        """
        expanded: str = os.path.expandvars(str(path))
        user_expanded: Path = Path(expanded).expanduser()
        if user_expanded.is_absolute():
            return user_expanded.resolve(strict=strict)
        return (Path.cwd() / user_expanded).resolve(strict=strict)

    @staticmethod
    def validate_file_path(file_path: Path, suffix: list[str] | str) -> None:
        """Validate that a file exists, is a regular file and has an allowed suffix.

        Raises:
            FileMissingError: If the file does not exist.
            InvalidFileTypeError: If the path is a directory.
            UnsupportedFileFormatError: If the file's suffix is not in the allowed list.
        """
        if isinstance(suffix, str):
            suffix = [suffix]

        if not file_path.exists():
            msg = f"File does not exist: {file_path}"
            raise FileMissingError(msg)
        if file_path.is_dir():
            msg = f"Invalid file type (directory): {file_path}"
            raise InvalidFileTypeError(msg)
        if file_path.suffix.lower() not in [s.lower() for s in suffix]:
            msg = f"Unsupported file format: '{file_path.suffix}'. Supported formats are: {', '.join(suffix)}"
            raise UnsupportedFileFormatError(msg)

    @staticmethod
    def write_text_atomic(file_path: Path, text: str) -> None:
        """Write ``text`` to a temporary file next to ``file_path`` and move it into place.

        Readers never observe a half-written file.
        """
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            tmp_path.replace(file_path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise


class FileUtilsError(Exception):
    """Custom exception for FileUtils-related errors."""


class FileMissingError(FileUtilsError):
    """Custom exception for file missing errors."""


class InvalidFileTypeError(FileUtilsError):
    """Custom exception for invalid file type errors."""


class UnsupportedFileFormatError(FileUtilsError):
    """Custom exception for unsupported file format errors."""
