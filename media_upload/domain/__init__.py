"""Domain layer: entities, value objects, enums, and exceptions.

No dependencies on infrastructure. Used by application and
infrastructure layers.
"""

from media_upload.domain.entities import UploadSession, UploadSessionSnapshot
from media_upload.domain.enums import MediaKind, TransferState, UploadStatus
from media_upload.domain.exceptions import (
    ConfigurationException,
    DuplicateSessionException,
    SessionFinalizedException,
    SessionNotFoundException,
    UploadCancelledException,
    UploadException,
    ValidationException,
)
from media_upload.domain.value_objects import (
    CdnConfig,
    RemoteReference,
    ResumableSessionCredentials,
    SourceFile,
    TransferDescriptor,
)

__all__ = [
    "UploadSession",
    "UploadSessionSnapshot",
    "MediaKind",
    "TransferState",
    "UploadStatus",
    "ConfigurationException",
    "DuplicateSessionException",
    "SessionFinalizedException",
    "SessionNotFoundException",
    "UploadCancelledException",
    "UploadException",
    "ValidationException",
    "CdnConfig",
    "RemoteReference",
    "ResumableSessionCredentials",
    "SourceFile",
    "TransferDescriptor",
]
