"""Domain enumerations for media uploads.

Enums represent fixed sets of domain values (media kinds, session status,
resumable transfer states).
"""

from enum import Enum

from media_upload.core.constants import (
    AUDIO_MIME_TYPES,
    IMAGE_MIME_TYPES,
    PDF_MIME_TYPES,
    VIDEO_MIME_TYPES,
)


class MediaKind(str, Enum):
    """Kind of media an upload carries. Sent to the backend as mediaType."""

    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"
    PDF = "pdf"
    LINK = "link"
    DESCRIPTION = "description"
    OTHER = "other"

    @classmethod
    def from_content_type(cls, content_type: str | None) -> "MediaKind":
        """Classify a MIME type; unknown or missing types are OTHER.

        Args:
            content_type: MIME type such as 'video/mp4'.

        Returns:
            The matching MediaKind.
        """
        if not content_type:
            return cls.OTHER
        for kind, mime_types in (
            (cls.VIDEO, VIDEO_MIME_TYPES),
            (cls.AUDIO, AUDIO_MIME_TYPES),
            (cls.IMAGE, IMAGE_MIME_TYPES),
            (cls.PDF, PDF_MIME_TYPES),
        ):
            if content_type in mime_types:
                return kind
        return cls.OTHER


class UploadStatus(str, Enum):
    """Upload session lifecycle status. COMPLETED and FAILED are terminal."""

    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not UploadStatus.UPLOADING

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid status values as strings."""
        return [status.value for status in cls]


class TransferState(str, Enum):
    """States of a resumable transfer."""

    NEGOTIATING = "negotiating"
    RESUMING = "resuming"
    STARTING = "starting"
    TRANSFERRING = "transferring"
    RETRYING = "retrying"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"
