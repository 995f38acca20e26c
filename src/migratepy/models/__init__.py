"""Data models for the Auth0 to WorkOS migration."""

from migratepy.models.records import (
    CredentialKind,
    ExportedOTPSecret,
    ExportedPassword,
    ExportedUser,
)
from migratepy.models.user import RemoteUser

__all__ = [
    # Export schemas
    "CredentialKind",
    "ExportedUser",
    "ExportedPassword",
    "ExportedOTPSecret",
    # Remote models
    "RemoteUser",
]
