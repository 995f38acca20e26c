"""Lazy readers for newline-delimited JSON export files."""

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from migratepy.core.exceptions import RecordParseError
from migratepy.utils.file_utils import safe_file_read

ModelT = TypeVar("ModelT", bound=BaseModel)


def ndjson_stream(file_path: str | Path) -> Iterator[Any]:
    """Yield one parsed JSON value per line, in file order.

    The file is opened on the first pull and read only as far as the
    consumer pulls. Whitespace-only lines are tolerated only at the end of
    the file; a blank line followed by another record is a parse error.

    Args:
        file_path: Path to the NDJSON file

    Yields:
        Parsed JSON values

    Raises:
        RecordParseError: On the first line that is not valid JSON, or a
            blank line in the middle of the file
        FileOperationError: If the file cannot be opened or read
    """
    for _, value in _numbered_stream(file_path):
        yield value


def validated_stream(
    file_path: str | Path, model: type[ModelT]
) -> Iterator[ModelT]:
    """Yield each NDJSON record validated against ``model``.

    Args:
        file_path: Path to the NDJSON file
        model: Pydantic model every line must satisfy

    Yields:
        Validated model instances

    Raises:
        RecordParseError: On invalid JSON or a record failing the schema
        FileOperationError: If the file cannot be opened or read
    """
    for line_number, value in _numbered_stream(file_path):
        try:
            yield model.model_validate(value)
        except PydanticValidationError as e:
            raise RecordParseError(
                f"Invalid {model.__name__} record",
                file_path=str(file_path),
                line_number=line_number,
                details=_summarize_validation_error(e),
            ) from e


def _numbered_stream(file_path: str | Path) -> Iterator[tuple[int, Any]]:
    blank_line: int | None = None
    with safe_file_read(file_path) as file:
        for line_number, line in enumerate(file, start=1):
            if not line.strip():
                if blank_line is None:
                    blank_line = line_number
                continue
            # Blank lines are only allowed after the last record
            if blank_line is not None:
                raise RecordParseError(
                    "Blank line before end of file",
                    file_path=str(file_path),
                    line_number=blank_line,
                )
            try:
                value = json.loads(line)
            except json.JSONDecodeError as e:
                raise RecordParseError(
                    "Malformed JSON line",
                    file_path=str(file_path),
                    line_number=line_number,
                    details=e.msg,
                ) from e
            yield line_number, value


def _summarize_validation_error(error: PydanticValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<record>"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)
