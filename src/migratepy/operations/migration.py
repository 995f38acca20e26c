"""End-to-end Auth0 to WorkOS user migration."""

from dataclasses import dataclass, field
from pathlib import Path

import click

from ..core.config import DEFAULT_CONCURRENCY, DEFAULT_STAGING_DB_PATH
from ..core.workos_client import WorkOSClient
from ..models.records import ExportedUser
from ..storage.staging_store import StagingStore
from ..utils.file_utils import validate_file_path
from ..utils.logging_utils import get_logger
from ..utils.ndjson_stream import validated_stream
from ..utils.rich_utils import print_section
from .backoff import ThrottleBackoff
from .reconciler import Reconciler
from .scheduler import MigrationScheduler, ProgressCounters

logger = get_logger(__name__)


@dataclass
class MigrationConfig:
    """Inputs and knobs for one migration run.

    Attributes:
        user_export: NDJSON user export from the Auth0 export extension
        password_exports: Password hash exports from Auth0 support
        mfa_exports: MFA enrollment exports from Auth0 support
        staging_db_path: Where the temporary SQLite store lives
        cleanup_staging_db: Delete the store file after the run
        concurrency: Maximum number of users imported at once
        fail_on_mfa_error: Count users whose TOTP enrollment failed as failed
    """

    user_export: Path
    password_exports: list[Path] = field(default_factory=list)
    mfa_exports: list[Path] = field(default_factory=list)
    staging_db_path: Path = Path(DEFAULT_STAGING_DB_PATH)
    cleanup_staging_db: bool = True
    concurrency: int = DEFAULT_CONCURRENCY
    fail_on_mfa_error: bool = False


def format_report(counters: ProgressCounters) -> str:
    """Final one-line summary printed to stdout."""
    return (
        f"Done importing. {counters.completed} of {counters.submitted} "
        "user records imported."
    )


def stage_credentials(store: StagingStore, config: MigrationConfig) -> None:
    """Load every configured credential export into the staging store."""
    for path in config.password_exports:
        print_section(f"Importing password hashes from {path}")
        store.ingest_password_export(path)

    for path in config.mfa_exports:
        print_section(f"Importing MFA secrets from {path}")
        store.ingest_secret_export(path)


def run_migration(
    config: MigrationConfig,
    client: WorkOSClient,
    backoff: ThrottleBackoff | None = None,
) -> ProgressCounters:
    """Stage credentials, import all users and print the report.

    The staging store is closed, and deleted when configured, on every
    exit path including fatal errors.

    Args:
        config: Run configuration
        client: WorkOS API client
        backoff: Rate limit cooldown policy (defaults apply when None)

    Returns:
        ProgressCounters: Final totals

    Raises:
        RecordParseError: If any export line is malformed
        FileOperationError: If an export or the staging store is unusable
        Exception: Any fatal error raised while importing users
    """
    validate_file_path(config.user_export, "read")
    for path in [*config.password_exports, *config.mfa_exports]:
        validate_file_path(path, "read")

    store = StagingStore(config.staging_db_path)
    try:
        stage_credentials(store, config)

        print_section(f"Importing users from {config.user_export}")
        reconciler = Reconciler(
            client,
            staging_store=store,
            fail_on_mfa_error=config.fail_on_mfa_error,
        )
        scheduler: MigrationScheduler[ExportedUser] = MigrationScheduler(
            reconciler,
            concurrency=config.concurrency,
            backoff=backoff,
        )
        counters = scheduler.run(validated_stream(config.user_export, ExportedUser))

        logger.info(
            f"Run totals: {counters.snapshot()}; "
            f"{scheduler.backoff.get_status_summary()}",
            extra={"operation": "migrate"},
        )
        click.echo(format_report(counters))
        return counters
    finally:
        store.destroy(delete_file=config.cleanup_staging_db)
