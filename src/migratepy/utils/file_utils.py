"""File operation utilities for export files and the staging database."""

import os
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

from migratepy.core.exceptions import FileOperationError
from migratepy.utils.logging_utils import get_logger

logger = get_logger(__name__)


def validate_file_path(file_path: str | Path, operation: str = "access") -> Path:
    """Validate a file path for the specified operation.

    Args:
        file_path: Path to validate
        operation: Type of operation (read, write, access)

    Returns:
        Path object if valid

    Raises:
        FileOperationError: If path is invalid for the operation
    """
    try:
        path = Path(file_path).resolve()
    except (OSError, ValueError) as e:
        raise FileOperationError(
            f"Invalid file path '{file_path}'", operation=operation, details=str(e)
        ) from e

    if operation == "read":
        if not path.exists():
            raise FileOperationError(
                "File not found", file_path=str(path), operation=operation
            )
        if not path.is_file():
            raise FileOperationError(
                "Path is not a file", file_path=str(path), operation=operation
            )
        if not os.access(path, os.R_OK):
            raise FileOperationError(
                "Permission denied reading file",
                file_path=str(path),
                operation=operation,
            )
    elif operation == "write":
        parent = path.parent
        if not parent.is_dir():
            raise FileOperationError(
                "Directory does not exist", file_path=str(parent), operation=operation
            )
        if not os.access(parent, os.W_OK):
            raise FileOperationError(
                "Permission denied writing to directory",
                file_path=str(parent),
                operation=operation,
            )
        if path.exists() and not path.is_file():
            raise FileOperationError(
                "Path exists but is not a file",
                file_path=str(path),
                operation=operation,
            )

    return path


@contextmanager
def safe_file_read(
    file_path: str | Path, encoding: str = "utf-8"
) -> Generator[TextIO, None, None]:
    """Context manager for file reading that reports I/O failures uniformly.

    Only I/O and decoding failures are translated; errors raised by the
    caller inside the ``with`` block pass through untouched.

    Args:
        file_path: Path to the file to read
        encoding: File encoding (default: utf-8)

    Yields:
        File object for reading

    Raises:
        FileOperationError: If file cannot be read
    """
    path = validate_file_path(file_path, "read")

    try:
        with open(path, encoding=encoding) as file:
            yield file
    except PermissionError as e:
        raise FileOperationError(
            "Permission denied reading file", file_path=str(path), operation="read"
        ) from e
    except UnicodeDecodeError as e:
        raise FileOperationError(
            "File encoding error", file_path=str(path), operation="read", details=str(e)
        ) from e
    except OSError as e:
        raise FileOperationError(
            "OS error reading file", file_path=str(path), operation="read", details=str(e)
        ) from e


def safe_file_delete(file_path: str | Path) -> bool:
    """Delete a file if it exists, logging instead of raising on failure.

    Args:
        file_path: Path to file to delete

    Returns:
        True if the file is gone afterwards, False otherwise
    """
    path = Path(file_path)
    try:
        path.unlink(missing_ok=True)
        return True
    except OSError as e:
        logger.warning(
            f"Could not delete {path}: {e}",
            extra={"file_path": str(path), "operation": "delete"},
        )
        return False
