"""Core functionality for the Auth0 to WorkOS migration."""

from migratepy.core.config import (
    check_env_file,
    get_base_url,
    get_env_config,
    validate_env_var,
)
from migratepy.core.exceptions import ConfigError
from migratepy.core.workos_client import WorkOSClient, WorkOSContext

__all__ = [
    "ConfigError",
    "get_env_config",
    "get_base_url",
    "check_env_file",
    "validate_env_var",
    "WorkOSClient",
    "WorkOSContext",
]
