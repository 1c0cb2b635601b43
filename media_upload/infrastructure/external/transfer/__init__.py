"""Byte transfer: resumable (TUS) and direct (signed URL, CDN multipart) paths.

Backoff policies and the source fingerprint used for resume matching
live here too.
"""

from media_upload.infrastructure.external.transfer.backoff import (
    DEFAULT_RETRY_DELAYS,
    ExponentialBackoff,
    FixedScheduleBackoff,
)
from media_upload.infrastructure.external.transfer.direct import DirectTransport
from media_upload.infrastructure.external.transfer.fingerprint import (
    compute_fingerprint,
)
from media_upload.infrastructure.external.transfer.resumable import ResumableTransport

__all__ = [
    "DEFAULT_RETRY_DELAYS",
    "DirectTransport",
    "ExponentialBackoff",
    "FixedScheduleBackoff",
    "ResumableTransport",
    "compute_fingerprint",
]
