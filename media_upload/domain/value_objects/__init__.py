"""Domain value objects and shared value types."""

from media_upload.domain.value_objects.core import (
    CdnConfig,
    RemoteReference,
    ResumableSessionCredentials,
    SourceFile,
    TransferDescriptor,
)

__all__ = [
    "CdnConfig",
    "RemoteReference",
    "ResumableSessionCredentials",
    "SourceFile",
    "TransferDescriptor",
]
