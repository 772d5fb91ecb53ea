"""
Exception classes for xfilesystem.

Every failure raised by the library derives from XFilesystemError and is
scoped to the single call that triggered it.
"""

from typing import Dict, Any, Optional


class XFilesystemError(Exception):
    """Base exception for all xfilesystem errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class NotFoundError(XFilesystemError):
    """Raised when a path does not exist or is not a regular file."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, {"path": path})
        self.path = path


class NotReadableError(XFilesystemError):
    """Raised when a path exists but cannot be read."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, {"path": path})
        self.path = path


class WriteError(XFilesystemError):
    """Raised when a destination cannot be written."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, {"path": path})
        self.path = path


class CSVError(XFilesystemError):
    """Raised when CSV parsing or dumping fails."""

    def __init__(self, message: str, file_path: Optional[str] = None, row_index: Optional[int] = None):
        details = {"file_path": file_path, "row_index": row_index}
        super().__init__(message, details)
        self.file_path = file_path
        self.row_index = row_index


class ColumnCountMismatchError(CSVError):
    """Raised when a row's field count differs from the header row's."""

    def __init__(self, message: str, file_path: Optional[str] = None, row_index: Optional[int] = None,
                 expected: Optional[int] = None, found: Optional[int] = None):
        super().__init__(message, file_path=file_path, row_index=row_index)
        self.expected = expected
        self.found = found
        self.details.update({"expected": expected, "found": found})


class InvalidDumpShapeError(CSVError):
    """Raised when data to dump is neither records nor plain rows."""
    pass


class InvalidRowDataError(CSVError):
    """
    Raised when a single row cannot be encoded.

    row_index is the 1-based item number in the caller's data, or None
    for the synthesized header row.
    """

    @property
    def is_header(self) -> bool:
        return self.row_index is None


class InvalidArgumentError(XFilesystemError, ValueError):
    """Raised when a mode, flag or dialect value is out of range."""

    def __init__(self, message: str, argument: Optional[str] = None, value: Optional[Any] = None):
        super().__init__(message, {"argument": argument, "value": value})
        self.argument = argument
        self.value = value


class DecodeError(XFilesystemError):
    """Raised when text cannot be decoded (JSON, YAML, Python literal, charset)."""

    def __init__(self, message: str, format: Optional[str] = None):
        super().__init__(message, {"format": format})
        self.format = format


class EncodeError(XFilesystemError):
    """Raised when data cannot be encoded into the requested format."""

    def __init__(self, message: str, format: Optional[str] = None):
        super().__init__(message, {"format": format})
        self.format = format


def format_error_message(error: Exception) -> str:
    """Format error message for user display."""
    if isinstance(error, XFilesystemError):
        return str(error)
    return f"Unexpected error: {error}"
