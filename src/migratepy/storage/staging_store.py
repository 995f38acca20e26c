"""Local staging store for credential material from Auth0 exports.

Password hashes and TOTP secrets are loaded from their export files into a
single-file SQLite database before the main migration pass, then looked up
by Auth0 user ID while users are imported. Inserts ignore conflicts, so the
first value seen for a user wins and re-running an ingest is harmless.
"""

from pathlib import Path
from types import TracebackType
from typing import Any

from pydantic import BaseModel
from sqlalchemy import Column, MetaData, String, Table, create_engine, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from migratepy.core.config import DEFAULT_STAGING_DB_PATH
from migratepy.core.exceptions import FileOperationError
from migratepy.models.records import (
    CredentialKind,
    ExportedOTPSecret,
    ExportedPassword,
)
from migratepy.utils.file_utils import safe_file_delete
from migratepy.utils.logging_utils import get_logger
from migratepy.utils.ndjson_stream import validated_stream

logger = get_logger(__name__)

metadata = MetaData()

passwords_table = Table(
    "passwords",
    metadata,
    Column("auth0_id", String, primary_key=True),
    Column("password_hash", String, nullable=False),
)

otp_secrets_table = Table(
    "otp_secrets",
    metadata,
    Column("auth0_id", String, primary_key=True),
    Column("otp_secret", String, nullable=False),
)

# kind -> (table, value column, export schema)
_KIND_LAYOUT: dict[CredentialKind, tuple[Table, str, type[BaseModel]]] = {
    CredentialKind.PASSWORD: (passwords_table, "password_hash", ExportedPassword),
    CredentialKind.OTP_SECRET: (otp_secrets_table, "otp_secret", ExportedOTPSecret),
}


def _to_row(kind: CredentialKind, record: Any) -> dict[str, str] | None:
    """Map a validated export record to a table row, or None to skip it."""
    if kind is CredentialKind.PASSWORD:
        return {"auth0_id": record.subject_id, "password_hash": record.password_hash}

    if not record.is_totp:
        return None
    return {"auth0_id": record.user_id, "otp_secret": record.otp_secret}


class StagingStore:
    """SQLite-backed lookup of staged credentials keyed by Auth0 user ID.

    Use as a context manager, or call ``close()``/``destroy()`` in a
    ``finally`` block, so the database is released on every exit path.
    Lookups are safe to run from worker threads.
    """

    def __init__(self, db_path: str | Path = DEFAULT_STAGING_DB_PATH) -> None:
        """Open (creating if needed) the staging database.

        Args:
            db_path: Location of the SQLite file

        Raises:
            FileOperationError: If the database cannot be opened or initialized
        """
        self.db_path = Path(db_path)
        self._closed = False
        try:
            self._engine: Engine = create_engine(
                f"sqlite:///{self.db_path}",
                connect_args={"check_same_thread": False},
            )
            metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            raise FileOperationError(
                "Cannot open staging database",
                file_path=str(self.db_path),
                operation="open",
                details=str(e),
            ) from e

        logger.debug(
            f"Opened staging database {self.db_path}",
            extra={"file_path": str(self.db_path)},
        )

    def __enter__(self) -> "StagingStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def ingest(self, file_path: str | Path, kind: CredentialKind) -> int:
        """Load one credential export into the store.

        Every record is validated against the export schema for ``kind``;
        entries the kind does not stage (such as non-OTP MFA enrollments)
        are skipped. Users already present keep their first value.

        Args:
            file_path: NDJSON export file
            kind: Which credential the file holds

        Returns:
            int: Number of rows newly inserted

        Raises:
            RecordParseError: If a line is malformed or fails the schema;
                nothing from the file is kept in that case
            FileOperationError: If the file or the database cannot be used
        """
        self._ensure_open()
        table, _, model = _KIND_LAYOUT[kind]

        inserted = 0
        skipped = 0
        try:
            with self._engine.begin() as conn:
                for record in validated_stream(file_path, model):
                    row = _to_row(kind, record)
                    if row is None:
                        skipped += 1
                        continue
                    stmt = (
                        sqlite_insert(table)
                        .values(**row)
                        .on_conflict_do_nothing(index_elements=["auth0_id"])
                    )
                    inserted += conn.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise FileOperationError(
                "Failed to write staging database",
                file_path=str(self.db_path),
                operation="ingest",
                details=str(e),
            ) from e

        logger.info(
            f"Staged {inserted} {kind.value} entries from {file_path}"
            + (f" ({skipped} skipped)" if skipped else ""),
            extra={"file_path": str(file_path), "operation": f"ingest_{kind.value}"},
        )
        return inserted

    def ingest_password_export(self, file_path: str | Path) -> int:
        """Load a password hash export. See ``ingest``."""
        return self.ingest(file_path, CredentialKind.PASSWORD)

    def ingest_secret_export(self, file_path: str | Path) -> int:
        """Load an MFA secret export. See ``ingest``."""
        return self.ingest(file_path, CredentialKind.OTP_SECRET)

    def lookup(self, subject_id: str, kind: CredentialKind) -> str | None:
        """Return the staged credential of ``kind`` for a user, if any.

        Args:
            subject_id: Auth0 user ID
            kind: Which credential to look up

        Returns:
            The staged value, or None when nothing was staged for this user

        Raises:
            FileOperationError: If the database cannot be queried
        """
        self._ensure_open()
        table, column, _ = _KIND_LAYOUT[kind]
        stmt = select(table.c[column]).where(table.c.auth0_id == subject_id)
        try:
            with self._engine.connect() as conn:
                return conn.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise FileOperationError(
                "Failed to read staging database",
                file_path=str(self.db_path),
                operation="lookup",
                details=str(e),
            ) from e

    def find_password(self, subject_id: str) -> str | None:
        return self.lookup(subject_id, CredentialKind.PASSWORD)

    def find_otp_secret(self, subject_id: str) -> str | None:
        return self.lookup(subject_id, CredentialKind.OTP_SECRET)

    def count(self, kind: CredentialKind) -> int:
        """Number of users with a staged credential of ``kind``."""
        self._ensure_open()
        table, _, _ = _KIND_LAYOUT[kind]
        with self._engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(table)).scalar_one()

    def close(self) -> None:
        """Release all database connections. Safe to call more than once."""
        if self._closed:
            return
        self._engine.dispose()
        self._closed = True
        logger.debug(
            f"Closed staging database {self.db_path}",
            extra={"file_path": str(self.db_path)},
        )

    def destroy(self, delete_file: bool = True) -> None:
        """Close the store and optionally remove its database file.

        Args:
            delete_file: Whether to delete the SQLite file afterwards
        """
        self.close()
        if delete_file and safe_file_delete(self.db_path):
            logger.debug(
                f"Deleted staging database {self.db_path}",
                extra={"file_path": str(self.db_path)},
            )

    def _ensure_open(self) -> None:
        if self._closed:
            raise FileOperationError(
                "Staging database is closed",
                file_path=str(self.db_path),
                operation="access",
            )
