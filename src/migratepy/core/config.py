"""Configuration utilities for WorkOS API access and the migration run."""

import os
from typing import Any, cast

import dotenv

from migratepy.core.exceptions import ConfigError

# Global constants for API configuration
API_TIMEOUT = 30  # request timeout in seconds

# Migration pipeline defaults
DEFAULT_CONCURRENCY = 10  # max concurrent user imports
DEFAULT_RETRY_AFTER = 10.0  # seconds to pause when 429 carries no Retry-After
RETRY_SAFETY_MARGIN = 1.0  # added to every cooldown
DEFAULT_STAGING_DB_PATH = "migrate-auth0-users.temp.db"
PASSWORD_HASH_TYPE = "bcrypt"
PASSWORD_ALREADY_SET = "password_already_set"

PROD_API_URL = "https://api.workos.com"
LOCAL_API_URL = "http://localhost:7000"


def check_env_file() -> None:
    """Check if .env file exists and load it."""
    env_path = ".env"
    if os.path.exists(env_path):
        dotenv.load_dotenv(env_path)


def validate_env_var(name: str, value: str | None) -> str:
    """Validate that an environment variable is set and not empty.

    Args:
        name: Environment variable name
        value: Environment variable value

    Returns:
        str: The validated value

    Raises:
        ConfigError: If the environment variable is missing or empty
    """
    if not value or not value.strip():
        raise ConfigError(
            f"Environment variable {name} is required but not set or empty"
        )
    return value.strip()


def get_env_config(env: str = "dev") -> dict[str, Any]:
    """Get WorkOS configuration from environment variables.

    The dev environment reads ``DEV_``-prefixed variables and talks to a
    locally running API unless ``DEV_WORKOS_API_URL`` says otherwise.

    Args:
        env: Environment to get config for ('dev' or 'prod')

    Returns:
        Dict[str, Any]: Configuration dictionary

    Raises:
        ConfigError: If required environment variables are missing
    """
    if env not in ("dev", "prod"):
        raise ConfigError(f"Unknown environment: {env}")

    check_env_file()

    prefix = "DEV_" if env == "dev" else ""

    api_key = validate_env_var(
        f"{prefix}WORKOS_API_KEY", os.getenv(f"{prefix}WORKOS_API_KEY")
    )

    default_url = LOCAL_API_URL if env == "dev" else PROD_API_URL
    base_url = os.getenv(f"{prefix}WORKOS_API_URL") or default_url
    if not base_url.startswith(("http://", "https://")):
        raise ConfigError(
            f"Invalid WorkOS API URL: {base_url}. "
            "URL should start with http:// or https://"
        )

    return {
        "api_key": api_key,
        "environment": env,
        "base_url": base_url.rstrip("/"),
    }


def get_base_url(env: str = "dev") -> str:
    """Get the WorkOS base URL for the given environment."""
    config = get_env_config(env)
    return cast(str, config["base_url"])
