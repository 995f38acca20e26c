"""Utilities module for the Auth0 to WorkOS migration."""

from .file_utils import safe_file_delete, safe_file_read, validate_file_path
from .logging_utils import configure_from_env, get_logger, setup_logging
from .ndjson_stream import ndjson_stream, validated_stream
from .rich_utils import get_console, install_rich_tracebacks, print_section

__all__ = [
    # File utilities
    "safe_file_delete",
    "safe_file_read",
    "validate_file_path",
    # Logging utilities
    "configure_from_env",
    "get_logger",
    "setup_logging",
    # Record streams
    "ndjson_stream",
    "validated_stream",
    # Console output
    "get_console",
    "install_rich_tracebacks",
    "print_section",
]
