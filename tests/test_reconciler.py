"""Tests for per-user reconciliation."""

import logging
from unittest.mock import MagicMock

import pytest

from migratepy.core.exceptions import (
    APIError,
    RateLimitError,
    ReconciliationError,
)
from migratepy.models.records import ExportedUser
from migratepy.models.user import RemoteUser
from migratepy.operations.reconciler import Reconciler


def make_user(user_id="auth0|abc123", email="Ann@Example.com", **extra):
    return ExportedUser.model_validate({"Id": user_id, "Email": email, **extra})


@pytest.fixture
def store():
    """Staging store double with nothing staged."""
    store = MagicMock()
    store.find_password.return_value = None
    store.find_otp_secret.return_value = None
    return store


class TestCreate:
    """Tests for the create-first path."""

    def test_profile_only_creation(self, mock_workos_client, store):
        reconciler = Reconciler(mock_workos_client, store)
        user = make_user(**{"Given Name": "Ann", "Family Name": "Lee", "Email Verified": True})

        result = reconciler.reconcile(user, 1)

        assert result == RemoteUser(id="user_Ann", email="Ann@Example.com")
        mock_workos_client.create_user.assert_called_once_with(
            email="Ann@Example.com",
            first_name="Ann",
            last_name="Lee",
            email_verified=True,
            password_hash=None,
            password_hash_type=None,
        )
        mock_workos_client.enroll_totp_factor.assert_not_called()

    def test_staged_hash_is_attached(self, mock_workos_client, staging_store, write_ndjson):
        export = write_ndjson(
            "passwords.ndjson", [{"_id": "abc123", "passwordHash": "$2b$...xyz"}]
        )
        staging_store.ingest_password_export(export)
        reconciler = Reconciler(mock_workos_client, staging_store)

        reconciler.reconcile(make_user("auth0|abc123"), 1)

        kwargs = mock_workos_client.create_user.call_args.kwargs
        assert kwargs["password_hash"] == "$2b$...xyz"
        assert kwargs["password_hash_type"] == "bcrypt"

    def test_without_store(self, mock_workos_client):
        reconciler = Reconciler(mock_workos_client)

        assert reconciler(make_user(), 1) is not None

    @pytest.mark.parametrize("email", [None, "", "   "])
    def test_missing_email_fails_record(self, mock_workos_client, store, email):
        reconciler = Reconciler(mock_workos_client, store)
        record = {"Id": "auth0|noemail"}
        if email is not None:
            record["Email"] = email

        result = reconciler.reconcile(ExportedUser.model_validate(record), 4)

        assert result is None
        mock_workos_client.create_user.assert_not_called()


class TestLookupFallback:
    """Tests for the lookup-by-email fallback."""

    def test_single_match_is_used(self, mock_workos_client, store):
        existing = RemoteUser(id="user_existing", email="ann@example.com")
        mock_workos_client.create_user.side_effect = APIError("Email taken", status_code=422)
        mock_workos_client.list_users.return_value = [existing]
        reconciler = Reconciler(mock_workos_client, store)

        assert reconciler.reconcile(make_user(), 1) == existing
        mock_workos_client.list_users.assert_called_once_with("ann@example.com")

    def test_ambiguous_match_fails(self, mock_workos_client, store):
        mock_workos_client.create_user.side_effect = APIError("Email taken")
        mock_workos_client.list_users.return_value = [
            RemoteUser(id="user_1", email="ann@example.com"),
            RemoteUser(id="user_2", email="ann@example.com"),
        ]
        reconciler = Reconciler(mock_workos_client, store)

        assert reconciler.reconcile(make_user(), 1) is None

    def test_no_match_raises_from_find_or_create(self, mock_workos_client, store):
        mock_workos_client.create_user.side_effect = APIError("Invalid")
        reconciler = Reconciler(mock_workos_client, store)

        with pytest.raises(ReconciliationError) as exc_info:
            reconciler.find_or_create_user(make_user(), 1)

        assert "0 matches" in str(exc_info.value)

    def test_lookup_error_fails_record(self, mock_workos_client, store):
        mock_workos_client.create_user.side_effect = APIError("Email taken")
        mock_workos_client.list_users.side_effect = APIError("boom", status_code=500)
        reconciler = Reconciler(mock_workos_client, store)

        assert reconciler.reconcile(make_user(), 1) is None


class TestRateLimitPropagation:
    """Rate limit errors must reach the scheduler untouched."""

    def test_from_create(self, mock_workos_client, store):
        mock_workos_client.create_user.side_effect = RateLimitError(retry_after=3)
        reconciler = Reconciler(mock_workos_client, store)

        with pytest.raises(RateLimitError):
            reconciler.reconcile(make_user(), 1)
        mock_workos_client.list_users.assert_not_called()

    def test_from_lookup(self, mock_workos_client, store):
        mock_workos_client.create_user.side_effect = APIError("Email taken")
        mock_workos_client.list_users.side_effect = RateLimitError()
        reconciler = Reconciler(mock_workos_client, store)

        with pytest.raises(RateLimitError):
            reconciler.reconcile(make_user(), 1)

    def test_from_enroll(self, mock_workos_client, store):
        store.find_otp_secret.return_value = "SECRET"
        mock_workos_client.enroll_totp_factor.side_effect = RateLimitError()
        reconciler = Reconciler(mock_workos_client, store)

        with pytest.raises(RateLimitError):
            reconciler.reconcile(make_user(), 1)


class TestTotpEnrollment:
    """Tests for MFA enrollment."""

    def test_enrolls_on_created_user(self, mock_workos_client, store):
        store.find_otp_secret.return_value = "JBSWY3DPEHPK3PXP"
        reconciler = Reconciler(mock_workos_client, store)

        reconciler.reconcile(make_user(), 1)

        mock_workos_client.enroll_totp_factor.assert_called_once_with(
            "user_Ann", "JBSWY3DPEHPK3PXP"
        )

    def test_enrolls_on_found_user(self, mock_workos_client, store):
        store.find_otp_secret.return_value = "JBSWY3DPEHPK3PXP"
        mock_workos_client.create_user.side_effect = APIError("Email taken")
        mock_workos_client.list_users.return_value = [
            RemoteUser(id="user_existing", email="ann@example.com")
        ]
        reconciler = Reconciler(mock_workos_client, store)

        reconciler.reconcile(make_user(), 1)

        mock_workos_client.enroll_totp_factor.assert_called_once_with(
            "user_existing", "JBSWY3DPEHPK3PXP"
        )

    def test_failure_is_warned_not_swallowed(self, mock_workos_client, store, caplog):
        store.find_otp_secret.return_value = "SECRET"
        mock_workos_client.enroll_totp_factor.side_effect = APIError("bad secret")
        reconciler = Reconciler(mock_workos_client, store)

        with caplog.at_level(logging.WARNING, logger="migratepy"):
            result = reconciler.reconcile(make_user(), 7)

        assert result is not None
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("TOTP enrollment failed" in r.getMessage() for r in warnings)
        assert warnings[0].record_number == 7

    def test_strict_mode_fails_record(self, mock_workos_client, store):
        store.find_otp_secret.return_value = "SECRET"
        mock_workos_client.enroll_totp_factor.side_effect = APIError("bad secret")
        reconciler = Reconciler(mock_workos_client, store, fail_on_mfa_error=True)

        assert reconciler.reconcile(make_user(), 1) is None


class TestPasswordOnFoundUser:
    """Staged hashes are applied to users found by email lookup."""

    @pytest.fixture
    def found(self, mock_workos_client, store):
        store.find_password.return_value = "$2b$...xyz"
        mock_workos_client.create_user.side_effect = APIError("Email taken")
        mock_workos_client.list_users.return_value = [
            RemoteUser(id="user_existing", email="ann@example.com")
        ]
        return Reconciler(mock_workos_client, store)

    def test_hash_migrated_on_found_user(self, found, mock_workos_client):
        assert found.reconcile(make_user(), 1).id == "user_existing"

        mock_workos_client.migrate_password.assert_called_once_with(
            "user_existing", "$2b$...xyz", "bcrypt"
        )

    def test_password_already_set_is_logged(self, found, mock_workos_client, caplog):
        mock_workos_client.migrate_password.side_effect = APIError(
            "Password already set", status_code=422, code="password_already_set"
        )

        with caplog.at_level(logging.INFO, logger="migratepy"):
            result = found.reconcile(make_user(), 5)

        assert result == RemoteUser(id="user_existing", email="ann@example.com")
        assert any(
            "already has a password set" in r.getMessage() and r.levelno == logging.INFO
            for r in caplog.records
        )

    def test_rejected_hash_fails_record(self, found, mock_workos_client):
        mock_workos_client.migrate_password.side_effect = APIError(
            "Invalid hash", status_code=422, code="invalid_password_hash"
        )

        assert found.reconcile(make_user(), 1) is None
        mock_workos_client.enroll_totp_factor.assert_not_called()

    def test_rate_limit_propagates(self, found, mock_workos_client):
        mock_workos_client.migrate_password.side_effect = RateLimitError(retry_after=2)

        with pytest.raises(RateLimitError):
            found.reconcile(make_user(), 1)

    def test_retry_after_created_user_throttle(self, found, mock_workos_client):
        """A user created before a throttle is found on retry and keeps its hash."""
        mock_workos_client.migrate_password.side_effect = APIError(
            "Password already set", code="password_already_set"
        )

        assert found.reconcile(make_user(), 1) is not None
        mock_workos_client.migrate_password.assert_called_once()

    def test_no_staged_hash_skips_migration(self, found, mock_workos_client, store):
        store.find_password.return_value = None

        found.reconcile(make_user(), 1)

        mock_workos_client.migrate_password.assert_not_called()

    def test_created_user_not_migrated(self, mock_workos_client, store):
        store.find_password.return_value = "$2b$...xyz"
        reconciler = Reconciler(mock_workos_client, store)

        reconciler.reconcile(make_user(), 1)

        mock_workos_client.migrate_password.assert_not_called()
