"""Custom exception hierarchy for the migratepy Auth0 to WorkOS migration tool."""


class MigrationError(Exception):
    """Base exception for migratepy.

    This is the root exception class for all migratepy-specific errors.
    All other custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, details: str | None = None):
        """Initialize the exception.

        Args:
            message: The main error message
            details: Optional additional details about the error
        """
        self.message = message
        self.details = details
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the complete error message."""
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigError(MigrationError):
    """Configuration errors.

    Raised when the WorkOS API key is missing or the environment
    configuration is otherwise unusable.
    """


class FileOperationError(MigrationError):
    """File operation errors.

    Raised when an export file cannot be read or the staging database
    cannot be opened, created or removed.
    """

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        operation: str | None = None,
        details: str | None = None,
    ):
        """Initialize the file operation error.

        Args:
            message: The main error message
            file_path: The file path that caused the error
            operation: The file operation that failed (read, open, etc.)
            details: Optional additional details about the error
        """
        self.file_path = file_path
        self.operation = operation
        super().__init__(message, details)

    def _format_message(self) -> str:
        """Format the complete error message with file context."""
        parts = [self.message]

        if self.operation:
            parts.append(f"Operation: {self.operation}")

        if self.file_path:
            parts.append(f"File: {self.file_path}")

        if self.details:
            parts.append(f"Details: {self.details}")

        return " | ".join(parts)


class RecordParseError(MigrationError):
    """Malformed export input.

    Raised when a line of an export file is not valid JSON or the parsed
    record fails its schema. Parse errors abort the whole run.
    """

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        line_number: int | None = None,
        details: str | None = None,
    ):
        """Initialize the parse error.

        Args:
            message: The main error message
            file_path: The export file being read
            line_number: 1-based line number of the offending record
            details: Optional additional details about the error
        """
        self.file_path = file_path
        self.line_number = line_number
        super().__init__(message, details)

    def _format_message(self) -> str:
        """Format the complete error message with location context."""
        parts = [self.message]

        if self.file_path:
            location = self.file_path
            if self.line_number is not None:
                location += f":{self.line_number}"
            parts.append(f"Location: {location}")

        if self.details:
            parts.append(f"Details: {self.details}")

        return " | ".join(parts)


class APIError(MigrationError):
    """WorkOS API-specific errors.

    Raised when WorkOS API calls fail due to invalid requests,
    conflicts, server errors or transport failures.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        endpoint: str | None = None,
        code: str | None = None,
        details: str | None = None,
    ):
        """Initialize the API error.

        Args:
            message: The main error message
            status_code: The HTTP status code from the API response
            endpoint: The API endpoint that failed
            code: Machine readable error code returned by WorkOS
            details: Optional additional details about the error
        """
        self.status_code = status_code
        self.endpoint = endpoint
        self.code = code
        super().__init__(message, details)

    def _format_message(self) -> str:
        """Format the complete error message with API context."""
        parts = [self.message]

        if self.status_code:
            parts.append(f"Status: {self.status_code}")

        if self.code:
            parts.append(f"Code: {self.code}")

        if self.endpoint:
            parts.append(f"Endpoint: {self.endpoint}")

        if self.details:
            parts.append(f"Details: {self.details}")

        return " | ".join(parts)


class RateLimitError(APIError):
    """Rate limiting errors from the WorkOS API.

    Raised when the API answers 429. Never terminal: the scheduler pauses
    admissions and retries the record after the cooldown.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: float | None = None,
        endpoint: str | None = None,
        details: str | None = None,
    ):
        """Initialize the rate limit error.

        Args:
            message: The main error message
            retry_after: Seconds to wait before retrying, if the service said
            endpoint: The API endpoint that was rate limited
            details: Optional additional details
        """
        self.retry_after = retry_after
        super().__init__(
            message=message,
            status_code=429,
            endpoint=endpoint,
            details=details,
        )

    def _format_message(self) -> str:
        """Format the complete error message with retry information."""
        msg = super()._format_message()
        if self.retry_after is not None:
            msg += f" | Retry after: {self.retry_after}s"
        return msg


class ReconciliationError(MigrationError):
    """A single record could not be matched to a remote user.

    Local to one record: logged and counted, the run continues.
    """

    def __init__(
        self,
        message: str,
        subject_id: str | None = None,
        details: str | None = None,
    ):
        """Initialize the reconciliation error.

        Args:
            message: The main error message
            subject_id: The Auth0 user ID of the failed record
            details: Optional additional details about the error
        """
        self.subject_id = subject_id
        super().__init__(message, details)

    def _format_message(self) -> str:
        """Format the complete error message with record context."""
        parts = [self.message]

        if self.subject_id:
            parts.append(f"User ID: {self.subject_id}")

        if self.details:
            parts.append(f"Details: {self.details}")

        return " | ".join(parts)
