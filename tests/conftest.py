import json
from unittest.mock import MagicMock

import pytest

from migratepy.core.workos_client import WorkOSClient
from migratepy.models.user import RemoteUser
from migratepy.storage.staging_store import StagingStore


@pytest.fixture
def write_ndjson(tmp_path):
    """Return a helper that writes records as an NDJSON file."""

    def _write(name, records):
        path = tmp_path / name
        with open(path, "w", encoding="utf-8") as f:
            for record in records:
                if isinstance(record, str):
                    f.write(record + "\n")
                else:
                    f.write(json.dumps(record) + "\n")
        return path

    return _write


@pytest.fixture
def staging_store(tmp_path):
    """Create a staging store in a temporary directory."""
    store = StagingStore(tmp_path / "staging.db")
    yield store
    store.close()


@pytest.fixture
def mock_workos_client():
    """Create a mock WorkOS client that creates users successfully."""
    client = MagicMock(spec=WorkOSClient)

    def _create_user(email, **kwargs):
        return RemoteUser(id=f"user_{email.split('@')[0]}", email=email)

    client.create_user = MagicMock(side_effect=_create_user)
    client.list_users = MagicMock(return_value=[])
    client.migrate_password = MagicMock(return_value={})
    client.enroll_totp_factor = MagicMock(return_value={})
    return client


@pytest.fixture
def mock_response():
    """Create a mock response object for requests."""
    response = MagicMock()
    response.status_code = 200
    response.headers = {}
    response.text = "{}"
    response.json = MagicMock(return_value={})
    return response
