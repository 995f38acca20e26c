"""Per-user reconciliation against WorkOS.

For every exported Auth0 user:

1. Create the WorkOS user, attaching the staged password hash if any.
2. If creation fails (typically because the email is taken), look the user
   up by email and use the match if there is exactly one. A staged password
   hash is then set on the found user; one that already has a password
   keeps it.
3. Enroll the staged TOTP secret, if any, on the resolved user.

Rate limit errors are never handled here; they propagate so the scheduler
can pause and retry the record.
"""

from ..core.config import PASSWORD_ALREADY_SET, PASSWORD_HASH_TYPE
from ..core.exceptions import APIError, RateLimitError, ReconciliationError
from ..core.workos_client import WorkOSClient
from ..models.records import ExportedUser
from ..models.user import RemoteUser
from ..storage.staging_store import StagingStore
from ..utils.logging_utils import get_logger

logger = get_logger(__name__)


class Reconciler:
    """Finds or creates the WorkOS user for each exported Auth0 user."""

    def __init__(
        self,
        client: WorkOSClient,
        staging_store: StagingStore | None = None,
        fail_on_mfa_error: bool = False,
    ) -> None:
        """Initialize the reconciler.

        Args:
            client: WorkOS API client
            staging_store: Staged credentials; None migrates profiles only
            fail_on_mfa_error: Count a user as failed when TOTP enrollment
                fails instead of only logging a warning
        """
        self.client = client
        self.staging_store = staging_store
        self.fail_on_mfa_error = fail_on_mfa_error

    def reconcile(self, user: ExportedUser, record_number: int) -> RemoteUser | None:
        """Migrate one exported user.

        Args:
            user: The exported Auth0 user
            record_number: Position in the user export, for log lines

        Returns:
            The resolved WorkOS user, or None if the user could not be
            migrated (the reason is logged)

        Raises:
            RateLimitError: If any WorkOS call was throttled
            FileOperationError: If the staging store cannot be read
        """
        context = {"record_number": record_number, "subject_id": user.id}

        try:
            remote_user = self.find_or_create_user(user, record_number)
        except ReconciliationError as e:
            logger.error(
                f"({record_number}) Could not find or create user: {e}",
                extra=context,
            )
            return None

        context["remote_id"] = remote_user.id

        if not self._enroll_staged_factor(user, remote_user, record_number):
            return None

        logger.info(
            f"({record_number}) Imported Auth0 user {user.id} "
            f"as WorkOS user {remote_user.id}",
            extra=context,
        )
        return remote_user

    def __call__(self, user: ExportedUser, record_number: int) -> RemoteUser | None:
        return self.reconcile(user, record_number)

    def find_or_create_user(self, user: ExportedUser, record_number: int) -> RemoteUser:
        """Create the WorkOS user or fall back to an email lookup.

        Raises:
            ReconciliationError: If the user has no email, or the lookup
                found zero or several users, or failed, or the staged
                password hash was rejected for a found user
            RateLimitError: If any call was throttled
        """
        email = user.normalized_email
        if email is None:
            raise ReconciliationError("Exported user has no email", subject_id=user.id)

        password_hash = self._staged_password(user, record_number)

        try:
            return self.client.create_user(
                email=user.email.strip() if user.email else email,
                first_name=user.given_name,
                last_name=user.family_name,
                email_verified=user.email_verified,
                password_hash=password_hash,
                password_hash_type=PASSWORD_HASH_TYPE if password_hash else None,
            )
        except RateLimitError:
            raise
        except APIError as e:
            logger.debug(
                f"({record_number}) Create failed, looking up by email: {e}",
                extra={"record_number": record_number, "subject_id": user.id},
            )

        try:
            matches = self.client.list_users(email)
        except RateLimitError:
            raise
        except APIError as e:
            raise ReconciliationError(
                "Email lookup failed", subject_id=user.id, details=str(e)
            ) from e

        if len(matches) != 1:
            raise ReconciliationError(
                "No unique WorkOS user for email",
                subject_id=user.id,
                details=f"{len(matches)} matches for {email}",
            )

        remote_user = matches[0]
        if password_hash:
            self._migrate_staged_password(
                user, remote_user, password_hash, record_number
            )
        return remote_user

    def _migrate_staged_password(
        self,
        user: ExportedUser,
        remote_user: RemoteUser,
        password_hash: str,
        record_number: int,
    ) -> None:
        """Set the staged hash on a user that already existed in WorkOS.

        Raises:
            ReconciliationError: If WorkOS rejects the hash
            RateLimitError: If the call was throttled
        """
        context = {
            "record_number": record_number,
            "subject_id": user.id,
            "remote_id": remote_user.id,
        }
        try:
            self.client.migrate_password(
                remote_user.id, password_hash, PASSWORD_HASH_TYPE
            )
        except RateLimitError:
            raise
        except APIError as e:
            if e.code == PASSWORD_ALREADY_SET:
                logger.info(
                    f"({record_number}) {user.id} (WorkOS {remote_user.id}) "
                    "already has a password set",
                    extra=context,
                )
                return
            raise ReconciliationError(
                "Password migration failed", subject_id=user.id, details=str(e)
            ) from e

        logger.debug(f"({record_number}) Migrated staged password hash", extra=context)

    def _staged_password(self, user: ExportedUser, record_number: int) -> str | None:
        if self.staging_store is None:
            return None
        password_hash = self.staging_store.find_password(user.id)
        if password_hash is None:
            logger.debug(
                f"({record_number}) No password found in export for {user.id}",
                extra={"record_number": record_number, "subject_id": user.id},
            )
        return password_hash

    def _enroll_staged_factor(
        self, user: ExportedUser, remote_user: RemoteUser, record_number: int
    ) -> bool:
        """Enroll the staged TOTP secret, if any.

        Returns:
            False only when enrollment failed and ``fail_on_mfa_error`` is set
        """
        if self.staging_store is None:
            return True
        secret = self.staging_store.find_otp_secret(user.id)
        if secret is None:
            return True

        context = {
            "record_number": record_number,
            "subject_id": user.id,
            "remote_id": remote_user.id,
        }
        try:
            self.client.enroll_totp_factor(remote_user.id, secret)
        except RateLimitError:
            raise
        except APIError as e:
            if self.fail_on_mfa_error:
                logger.error(
                    f"({record_number}) TOTP enrollment failed for {user.id}: {e}",
                    extra=context,
                )
                return False
            logger.warning(
                f"({record_number}) TOTP enrollment failed for {user.id}, "
                f"user imported without MFA: {e}",
                extra=context,
            )
            return True

        logger.debug(f"({record_number}) Enrolled TOTP factor", extra=context)
        return True
