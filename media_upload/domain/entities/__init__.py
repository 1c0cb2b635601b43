"""Domain entities.

Pure domain models; no transport or persistence concerns.
"""

from media_upload.domain.entities.upload_session import (
    UploadSession,
    UploadSessionSnapshot,
)

__all__ = [
    "UploadSession",
    "UploadSessionSnapshot",
]
