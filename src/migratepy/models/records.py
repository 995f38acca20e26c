"""Schemas for the Auth0 export files.

Field names of ``ExportedUser`` match the defaults of Auth0's
"User Import / Export" extension:

    https://auth0.com/docs/customize/extensions/user-import-export-extension

Password and MFA exports are the bulk exports Auth0 support hands out on
request, one JSON document per line.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

AUTH0_DATABASE_PREFIX = "auth0|"


class CredentialKind(str, Enum):
    """Kinds of credential material held by the staging store."""

    PASSWORD = "password"
    OTP_SECRET = "otp_secret"


class ExportedUser(BaseModel):
    """One user profile from the primary user export."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(alias="Id")
    email: str | None = Field(default=None, alias="Email")
    email_verified: bool | None = Field(default=None, alias="Email Verified")
    given_name: str | None = Field(default=None, alias="Given Name")
    family_name: str | None = Field(default=None, alias="Family Name")

    @property
    def normalized_email(self) -> str | None:
        """Lower-cased email used for the lookup fallback."""
        if not self.email or not self.email.strip():
            return None
        return self.email.strip().lower()


class ExportedPassword(BaseModel):
    """One password hash from the password export.

    Older exports wrap the id as a Mongo ObjectId (``{"$oid": "..."}``),
    newer ones carry the bare string.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")
    password_hash: str = Field(alias="passwordHash")

    @field_validator("id", mode="before")
    @classmethod
    def unwrap_object_id(cls, value: Any) -> Any:
        if isinstance(value, dict) and "$oid" in value:
            return value["$oid"]
        return value

    @property
    def subject_id(self) -> str:
        """Auth0 user ID the hash belongs to."""
        if self.id.startswith(AUTH0_DATABASE_PREFIX):
            return self.id
        return f"{AUTH0_DATABASE_PREFIX}{self.id}"


class ExportedOTPSecret(BaseModel):
    """One MFA enrollment from the MFA export."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    user_id: str
    type: str
    otp_secret: str | None = None

    @property
    def is_totp(self) -> bool:
        """Only OTP enrollments with a secret can be migrated."""
        return self.type == "otp" and bool(self.otp_secret)
