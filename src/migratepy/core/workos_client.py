"""WorkOS User Management API client.

A thin requests-based client exposing the calls the migration needs. Every
non-2xx answer becomes an exception: 429 responses raise ``RateLimitError``
carrying the service's ``Retry-After`` hint, everything else ``APIError``.
"""

import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any
from urllib.parse import quote

import requests

from migratepy import __version__
from migratepy.core.config import API_TIMEOUT, get_env_config
from migratepy.core.exceptions import APIError, RateLimitError
from migratepy.models.user import RemoteUser
from migratepy.utils.logging_utils import get_logger

logger = get_logger(__name__)


class HttpMethod(str, Enum):
    """HTTP methods used against the WorkOS API."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class WorkOSContext:
    """Connection settings for one WorkOS environment."""

    api_key: str
    base_url: str
    env: str = "dev"

    @classmethod
    def from_env(cls, env: str = "dev") -> "WorkOSContext":
        """Build a context from environment variables.

        Raises:
            ConfigError: If the API key is missing or the URL is invalid
        """
        config = get_env_config(env)
        return cls(
            api_key=config["api_key"],
            base_url=config["base_url"],
            env=config["environment"],
        )


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header given as seconds or an HTTP date.

    Args:
        value: Raw header value

    Returns:
        Seconds to wait, or None if absent or unparseable
    """
    if value is None:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, retry_at.timestamp() - time.time())


class WorkOSClient:
    """Client for the WorkOS User Management endpoints."""

    USER_AGENT = f"migratepy/{__version__}"

    def __init__(self, context: WorkOSContext, timeout: float = API_TIMEOUT) -> None:
        """Initialize the client.

        Args:
            context: API key and base URL
            timeout: Per-request timeout in seconds
        """
        self.context = context
        self.base_url = context.base_url.rstrip("/")
        self.timeout = timeout

    def _build_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.context.api_key}",
            "Content-Type": "application/json",
            "User-Agent": self.USER_AGENT,
        }
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: HttpMethod,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
        operation_name: str = "request",
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Args:
            method: HTTP method
            endpoint: Path relative to the base URL
            params: Optional query parameters
            json_data: Optional JSON body
            operation_name: Name used in log lines and errors

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            RateLimitError: On HTTP 429
            APIError: On any other error status or transport failure
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        start = time.monotonic()
        try:
            response = requests.request(
                method.value,
                url,
                headers=self._build_headers(),
                params=params,
                json=json_data,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise APIError(
                f"Request timeout during {operation_name}", endpoint=endpoint
            ) from e
        except requests.exceptions.RequestException as e:
            raise APIError(
                f"Request failed during {operation_name}",
                endpoint=endpoint,
                details=str(e),
            ) from e

        logger.debug(
            f"{method.value} {endpoint} -> {response.status_code}",
            extra={
                "operation": operation_name,
                "status_code": response.status_code,
                "duration": time.monotonic() - start,
            },
        )
        return self._handle_response(response, endpoint, operation_name)

    def _handle_response(
        self, response: requests.Response, endpoint: str, operation_name: str
    ) -> Any:
        status = response.status_code

        if status == 429:
            raise RateLimitError(
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
                endpoint=endpoint,
                details=f"Operation: {operation_name}",
            )

        if status >= 400:
            code, message = self._extract_error(response)
            if status >= 500:
                message = f"Server error during {operation_name}: {message}"
            raise APIError(
                message,
                status_code=status,
                endpoint=endpoint,
                code=code,
            )

        if status == 204 or not response.text:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise APIError(
                f"Invalid JSON in response to {operation_name}",
                status_code=status,
                endpoint=endpoint,
            ) from e

    @staticmethod
    def _extract_error(response: requests.Response) -> tuple[str | None, str]:
        try:
            body = response.json()
        except ValueError:
            return None, response.text or f"HTTP {response.status_code}"

        if isinstance(body, dict):
            code = body.get("code") or body.get("error")
            message = body.get("message") or body.get("error_description")
            return code, str(message or code or f"HTTP {response.status_code}")
        return None, str(body)

    def create_user(
        self,
        email: str,
        first_name: str | None = None,
        last_name: str | None = None,
        email_verified: bool | None = None,
        password_hash: str | None = None,
        password_hash_type: str | None = None,
    ) -> RemoteUser:
        """Create a user, optionally with an imported password hash.

        Returns:
            RemoteUser: The created user

        Raises:
            RateLimitError: If throttled
            APIError: If creation fails, e.g. the email is already taken
        """
        body: dict[str, Any] = {"email": email}
        if first_name is not None:
            body["first_name"] = first_name
        if last_name is not None:
            body["last_name"] = last_name
        if email_verified is not None:
            body["email_verified"] = email_verified
        if password_hash is not None:
            body["password_hash"] = password_hash
            body["password_hash_type"] = password_hash_type

        data = self.request(
            HttpMethod.POST,
            "/user_management/users",
            json_data=body,
            operation_name="create user",
        )
        if not isinstance(data, dict) or not data.get("id"):
            raise APIError(
                "Create user response has no user ID",
                endpoint="/user_management/users",
            )
        return RemoteUser.from_workos_data(data)

    def list_users(self, email: str) -> list[RemoteUser]:
        """List users whose email matches exactly.

        Raises:
            RateLimitError: If throttled
            APIError: If the request fails
        """
        data = self.request(
            HttpMethod.GET,
            "/user_management/users",
            params={"email": email},
            operation_name="list users",
        )
        users = (data or {}).get("data", [])
        return [RemoteUser.from_workos_data(user) for user in users]

    def migrate_password(
        self, user_id: str, password_hash: str, password_hash_type: str
    ) -> dict[str, Any]:
        """Set an imported password hash on an existing user.

        Raises:
            RateLimitError: If throttled
            APIError: If the hash is rejected; code ``password_already_set``
                when the user already has a password
        """
        data = self.request(
            HttpMethod.POST,
            f"/user_management/users/{quote(user_id, safe='')}/password/migrate",
            json_data={
                "password_hash": password_hash,
                "password_type": password_hash_type,
            },
            operation_name="migrate password",
        )
        return data or {}

    def enroll_totp_factor(self, user_id: str, totp_secret: str) -> dict[str, Any]:
        """Enroll an existing TOTP secret as an authentication factor.

        Raises:
            RateLimitError: If throttled
            APIError: If enrollment fails
        """
        data = self.request(
            HttpMethod.POST,
            f"/user_management/users/{quote(user_id, safe='')}/auth_factors",
            json_data={"type": "totp", "totp_secret": totp_secret},
            operation_name="enroll auth factor",
        )
        return data or {}

    def check_access(self) -> bool:
        """Make one cheap authenticated call to verify the API key.

        Raises:
            APIError: If the key is rejected or the API is unreachable
        """
        self.request(
            HttpMethod.GET,
            "/user_management/users",
            params={"limit": 1},
            operation_name="check access",
        )
        return True
