"""Tests for upload exceptions (error_code, message, details)."""

from media_upload.domain.enums import MediaKind
from media_upload.domain.exceptions import (
    ConfigurationException,
    DuplicateSessionException,
    SessionFinalizedException,
    SessionNotFoundException,
    UploadCancelledException,
    UploadException,
    ValidationException,
)
from media_upload.domain.value_objects.core import RemoteReference
from media_upload.infrastructure.exceptions import (
    BackendRequestError,
    CredentialsExpiredError,
    NegotiationError,
    RegistrationError,
    TransferError,
)
from tests.factories import make_descriptor


def test_upload_exception_default_error_code() -> None:
    """Base UploadException uses class name as error_code when not provided."""
    exc = UploadException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "UploadException"
    assert exc.details == {}


def test_upload_exception_custom_error_code_and_details() -> None:
    exc = UploadException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.error_code == "CUSTOM"
    assert exc.details == {"key": "value"}
    assert str(exc) == "Oops"


def test_validation_exception() -> None:
    exc = ValidationException("Not a video", field="content_type")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "content_type"}


def test_validation_exception_without_field() -> None:
    assert ValidationException("Invalid").details == {}


def test_configuration_exception() -> None:
    exc = ConfigurationException("CDN missing", setting="cloud_name")
    assert exc.error_code == "CONFIGURATION_ERROR"
    assert exc.details == {"setting": "cloud_name"}


def test_session_exceptions_carry_session_id() -> None:
    assert SessionNotFoundException("s1").details == {"session_id": "s1"}
    assert DuplicateSessionException("s1").error_code == "DUPLICATE_SESSION"
    exc = SessionFinalizedException("s1", "completed")
    assert exc.details == {"session_id": "s1", "status": "completed"}
    assert "already completed" in exc.message


def test_upload_cancelled_exception() -> None:
    exc = UploadCancelledException("s1")
    assert exc.error_code == "UPLOAD_CANCELLED"
    assert exc.details == {"session_id": "s1"}
    assert UploadCancelledException().details == {}


def test_infrastructure_errors_are_upload_exceptions() -> None:
    assert isinstance(BackendRequestError("op", "down"), UploadException)
    assert isinstance(NegotiationError("video", "down"), UploadException)
    assert isinstance(TransferError("down"), UploadException)


def test_backend_request_error_status_code() -> None:
    exc = BackendRequestError("finalize_file", "boom", status_code=500)
    assert exc.status_code == 500
    assert exc.details == {"operation": "finalize_file", "reason": "boom", "status_code": 500}


def test_transfer_error_transient_flag() -> None:
    exc = TransferError("HTTP 503", transient=True, status_code=503, offset=8)
    assert exc.transient is True
    assert exc.details["offset"] == 8
    assert TransferError("HTTP 400").transient is False


def test_credentials_expired_error() -> None:
    exc = CredentialsExpiredError("v1", 1_700_000_000)
    assert isinstance(exc, TransferError)
    assert exc.transient is False
    assert exc.error_code == "CREDENTIALS_EXPIRED"
    assert exc.details["remote_object_id"] == "v1"


def test_registration_error_keeps_retry_inputs() -> None:
    descriptor = make_descriptor(MediaKind.OTHER, filename="notes.zip")
    reference = RemoteReference(file_id="f1")
    exc = RegistrationError(MediaKind.OTHER, reference, descriptor, "HTTP 500")
    assert exc.error_code == "REGISTRATION_ERROR"
    assert exc.kind is MediaKind.OTHER
    assert exc.remote_reference is reference
    assert exc.descriptor is descriptor
    assert exc.details == {"kind": "other", "filename": "notes.zip", "reason": "HTTP 500"}
