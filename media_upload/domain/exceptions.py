"""Domain exceptions for media uploads.

Defines domain-level exceptions that represent broken upload rules
(invalid input, missing configuration, session lifecycle misuse).
These exceptions are independent of transport concerns. Callers map
them to UI or HTTP responses using message, error_code, and details.
"""

from typing import Any


class UploadException(Exception):
    """Base exception for all upload errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Session failure messages are
    taken from message; error_code and details carry machine-readable
    context.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. session_id, field).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(UploadException):
    """Raised when input validation fails (e.g. wrong media type or empty file)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ConfigurationException(UploadException):
    """Raised when required configuration is missing (e.g. CDN cloud name or preset).

    Raised before any transfer request is issued.
    """

    def __init__(self, message: str, setting: str | None = None) -> None:
        details = {"setting": setting} if setting else {}
        super().__init__(message, "CONFIGURATION_ERROR", details)


class SessionNotFoundException(UploadException):
    """Raised when a session id is not in the status table."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Upload session not found: {session_id}",
            "SESSION_NOT_FOUND",
            {"session_id": session_id},
        )


class DuplicateSessionException(UploadException):
    """Raised when registering a session id that is already tracked."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Upload session already registered: {session_id}",
            "DUPLICATE_SESSION",
            {"session_id": session_id},
        )


class SessionFinalizedException(UploadException):
    """Raised when mutating a session that already reached a terminal status.

    A retry must create a new session.
    """

    def __init__(self, session_id: str, status: str) -> None:
        """Initialize with session id and its terminal status.

        Args:
            session_id: Session that was already finalized.
            status: Terminal status value ('completed' or 'failed').
        """
        super().__init__(
            f"Upload session {session_id} is already {status}",
            "SESSION_FINALIZED",
            {"session_id": session_id, "status": status},
        )


class UploadCancelledException(UploadException):
    """Raised when the caller cancelled an in-flight upload."""

    def __init__(self, session_id: str | None = None) -> None:
        details = {"session_id": session_id} if session_id else {}
        super().__init__("Upload cancelled by user", "UPLOAD_CANCELLED", details)
