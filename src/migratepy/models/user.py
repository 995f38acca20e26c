"""Remote user model for WorkOS User Management."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RemoteUser:
    """A WorkOS user, either created by the migration or found by email."""

    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    email_verified: bool = False

    @classmethod
    def from_workos_data(cls, data: dict[str, Any]) -> "RemoteUser":
        """Create a RemoteUser from a WorkOS API user object.

        Args:
            data: User object from a WorkOS API response

        Returns:
            RemoteUser: Parsed user
        """
        return cls(
            id=data.get("id", ""),
            email=data.get("email", ""),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            email_verified=bool(data.get("email_verified", False)),
        )
