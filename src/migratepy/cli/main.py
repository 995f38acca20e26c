"""Click-based CLI entry point for the migratepy Auth0 to WorkOS migration tool."""

import sys
from pathlib import Path

import click

from ..core.config import DEFAULT_CONCURRENCY, DEFAULT_STAGING_DB_PATH
from ..core.exceptions import ConfigError, MigrationError
from ..core.workos_client import WorkOSClient, WorkOSContext
from ..operations.migration import MigrationConfig, run_migration
from ..utils.logging_utils import configure_from_env, setup_logging
from ..utils.rich_utils import install_rich_tracebacks

ENV_CHOICE = click.Choice(["dev", "prod"])
EXPORT_FILE = click.Path(exists=True, file_okay=True, dir_okay=False, readable=True)


@click.group(invoke_without_command=True)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Override MIGRATEPY_LOG_LEVEL",
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json", "detailed"]),
    help="Override MIGRATEPY_LOG_FORMAT",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, log_format: str | None) -> None:
    """migratepy - import Auth0 users, passwords and MFA secrets into WorkOS."""
    if log_level or log_format:
        setup_logging(level=log_level or "INFO", log_format=log_format or "console")
    else:
        configure_from_env()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("env", type=ENV_CHOICE, default="dev")
def doctor(env: str) -> None:
    """Test WorkOS credentials and API access."""
    try:
        context = WorkOSContext.from_env(env)
        WorkOSClient(context).check_access()
    except ConfigError as e:
        click.secho(f"Configuration error: {e}", fg="red", err=True)
        sys.exit(1)
    except MigrationError as e:
        click.secho(f"WorkOS API check failed: {e}", fg="red", err=True)
        sys.exit(1)

    click.secho(f"WorkOS API access OK ({context.base_url})", fg="green")


@cli.command("import-users")
@click.argument("env", type=ENV_CHOICE, default="dev")
@click.option(
    "--user-export",
    type=EXPORT_FILE,
    required=True,
    help="Path to the user export created by the Auth0 export extension.",
)
@click.option(
    "--password-export",
    "password_exports",
    type=EXPORT_FILE,
    multiple=True,
    help="Path to a password export received from Auth0 support. Repeatable.",
)
@click.option(
    "--mfa-export",
    "mfa_exports",
    type=EXPORT_FILE,
    multiple=True,
    help="Path to an MFA secret export received from Auth0 support. Repeatable.",
)
@click.option(
    "--staging-db",
    type=click.Path(dir_okay=False),
    default=DEFAULT_STAGING_DB_PATH,
    show_default=True,
    help="Location of the temporary SQLite database.",
)
@click.option(
    "--cleanup-temp-db/--no-cleanup-temp-db",
    default=True,
    show_default=True,
    help="Whether to delete the temporary SQLite database after the migration.",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=DEFAULT_CONCURRENCY,
    show_default=True,
    help="Maximum number of users imported at once.",
)
@click.option(
    "--strict-mfa",
    is_flag=True,
    help="Count users whose TOTP enrollment fails as not imported.",
)
@click.option("--yes", is_flag=True, help="Skip the production confirmation prompt")
def import_users(
    env: str,
    user_export: str,
    password_exports: tuple[str, ...],
    mfa_exports: tuple[str, ...],
    staging_db: str,
    cleanup_temp_db: bool,
    concurrency: int,
    strict_mfa: bool,
    yes: bool,
) -> None:
    """Import users from an Auth0 export into WorkOS."""
    if env == "prod" and not yes:
        click.confirm(
            "You are about to import users into production WorkOS. Continue?",
            abort=True,
        )

    config = MigrationConfig(
        user_export=Path(user_export),
        password_exports=[Path(p) for p in password_exports],
        mfa_exports=[Path(p) for p in mfa_exports],
        staging_db_path=Path(staging_db),
        cleanup_staging_db=cleanup_temp_db,
        concurrency=concurrency,
        fail_on_mfa_error=strict_mfa,
    )

    try:
        client = WorkOSClient(WorkOSContext.from_env(env))
        run_migration(config, client)
    except ConfigError as e:
        click.secho(f"Configuration error: {e}", fg="red", err=True)
        sys.exit(1)
    except MigrationError as e:
        click.secho(f"Migration aborted: {e}", fg="red", err=True)
        sys.exit(1)


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        install_rich_tracebacks()
        cli()
    except KeyboardInterrupt:
        click.secho("\nOperation interrupted by user.", fg="yellow", err=True)
        sys.exit(130)
    except Exception as e:
        click.secho(f"Unexpected error: {e}", fg="red", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
