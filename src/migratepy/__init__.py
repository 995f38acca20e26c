"""migratepy - Auth0 to WorkOS user migration tool."""

__version__ = "1.0.0"

# Core functionality
from .core.config import (
    API_TIMEOUT,
    DEFAULT_CONCURRENCY,
    DEFAULT_STAGING_DB_PATH,
    get_base_url,
    get_env_config,
)
from .core.exceptions import (
    APIError,
    ConfigError,
    FileOperationError,
    MigrationError,
    RateLimitError,
    ReconciliationError,
    RecordParseError,
)
from .core.workos_client import WorkOSClient, WorkOSContext

# Models
from .models import (
    CredentialKind,
    ExportedOTPSecret,
    ExportedPassword,
    ExportedUser,
    RemoteUser,
)

# Operations
from .operations import (
    MigrationConfig,
    MigrationScheduler,
    ProgressCounters,
    Reconciler,
    TaskState,
    ThrottleBackoff,
    run_migration,
)

# Storage
from .storage import StagingStore

# Utilities
from .utils import get_logger, ndjson_stream, setup_logging, validated_stream

__all__ = [
    # Core
    "API_TIMEOUT",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_STAGING_DB_PATH",
    "get_env_config",
    "get_base_url",
    "WorkOSClient",
    "WorkOSContext",
    # Exceptions
    "MigrationError",
    "ConfigError",
    "FileOperationError",
    "RecordParseError",
    "APIError",
    "RateLimitError",
    "ReconciliationError",
    # Models
    "CredentialKind",
    "ExportedUser",
    "ExportedPassword",
    "ExportedOTPSecret",
    "RemoteUser",
    # Operations
    "MigrationConfig",
    "MigrationScheduler",
    "ProgressCounters",
    "Reconciler",
    "TaskState",
    "ThrottleBackoff",
    "run_migration",
    # Storage
    "StagingStore",
    # Utilities
    "get_logger",
    "setup_logging",
    "ndjson_stream",
    "validated_stream",
]
