"""Infrastructure exceptions for backend, CDN and transfer operations.

All extend UploadException so callers can handle failures consistently
and the orchestrator can record message on the failed session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from media_upload.domain.exceptions import UploadException

if TYPE_CHECKING:
    from media_upload.domain.enums import MediaKind
    from media_upload.domain.value_objects.core import (
        RemoteReference,
        TransferDescriptor,
    )


class BackendRequestError(UploadException):
    """A backend API call failed (network error or non-2xx response)."""

    def __init__(
        self,
        operation: str,
        reason: str,
        status_code: int | None = None,
    ) -> None:
        details: dict[str, Any] = {"operation": operation, "reason": reason}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(
            f"Backend request failed: {operation}",
            "BACKEND_REQUEST_ERROR",
            details,
        )
        self.status_code = status_code


class NegotiationError(UploadException):
    """Credential or signed-URL negotiation failed; no transfer was attempted."""

    def __init__(self, kind: str, reason: str) -> None:
        super().__init__(
            f"Failed to negotiate {kind} upload",
            "NEGOTIATION_ERROR",
            {"kind": kind, "reason": reason},
        )


class TransferError(UploadException):
    """Byte transfer failed.

    transient is True for failures of a retryable kind (network errors,
    5xx); the transport has already given up on them, either because its
    retry budget ran out or because it never retries. False for errors
    that no retry can fix (e.g. 4xx).
    """

    def __init__(
        self,
        reason: str,
        *,
        transient: bool = False,
        status_code: int | None = None,
        offset: int | None = None,
    ) -> None:
        details: dict[str, Any] = {"reason": reason, "transient": transient}
        if status_code is not None:
            details["status_code"] = status_code
        if offset is not None:
            details["offset"] = offset
        super().__init__(
            f"Transfer failed: {reason}",
            "TRANSFER_ERROR",
            details,
        )
        self.transient = transient
        self.status_code = status_code


class CredentialsExpiredError(TransferError):
    """Resumable credentials expired mid-transfer. Start a new session."""

    def __init__(self, remote_object_id: str, expiration_time: int) -> None:
        super().__init__(
            f"Transfer credentials for {remote_object_id} expired at {expiration_time}",
            transient=False,
        )
        self.error_code = "CREDENTIALS_EXPIRED"
        self.details.update(
            {"remote_object_id": remote_object_id, "expiration_time": expiration_time}
        )


class RegistrationError(UploadException):
    """Bytes were transferred but the asset commit failed (partial failure).

    Carries what is needed to re-issue only the commit call: the media
    kind, the remote reference left by the transfer, and the descriptor.
    """

    def __init__(
        self,
        kind: MediaKind,
        remote_reference: RemoteReference,
        descriptor: TransferDescriptor,
        reason: str,
    ) -> None:
        super().__init__(
            f"Failed to register {kind.value} asset '{descriptor.filename}'",
            "REGISTRATION_ERROR",
            {"kind": kind.value, "filename": descriptor.filename, "reason": reason},
        )
        self.kind = kind
        self.remote_reference = remote_reference
        self.descriptor = descriptor
