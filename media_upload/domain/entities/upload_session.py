"""Upload session domain entity.

One session per upload call. Progress moves forward only while the
session is uploading; completed and failed are terminal, and 100% is
reserved for completed sessions.
"""

from dataclasses import dataclass, field
from datetime import datetime

from media_upload.core.constants import PROGRESS_COMPLETE, PROGRESS_FAILED
from media_upload.domain.enums import MediaKind, UploadStatus
from media_upload.domain.exceptions import SessionFinalizedException
from media_upload.shared.utils.datetime import utc_now

# Highest progress an in-flight session may report
_MAX_IN_FLIGHT_PROGRESS = PROGRESS_COMPLETE - 1


@dataclass(frozen=True)
class UploadSessionSnapshot:
    """Immutable copy of a session handed to observers and callers."""

    session_id: str
    filename: str
    kind: MediaKind
    progress: int
    status: UploadStatus
    content_hash: str | None
    transport_handle: str | None
    error: str | None
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, object]:
        """Serialize for JSON publish."""
        return {
            "session_id": self.session_id,
            "filename": self.filename,
            "kind": self.kind.value,
            "progress": self.progress,
            "status": self.status.value,
            "content_hash": self.content_hash,
            "transport_handle": self.transport_handle,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class UploadSession:
    """Domain entity for one upload (state record and lifecycle rules)."""

    session_id: str
    filename: str
    kind: MediaKind
    progress: int = 0
    status: UploadStatus = UploadStatus.UPLOADING
    content_hash: str | None = None
    transport_handle: str | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _ensure_mutable(self) -> None:
        if self.is_terminal:
            raise SessionFinalizedException(self.session_id, self.status.value)

    def report_progress(self, percent: int) -> bool:
        """Record transfer progress.

        Values are clamped to 0..99 while uploading; a value lower than the
        current progress is ignored so progress never regresses.

        Args:
            percent: Progress in percent, usually floor(acked / total * 100).

        Returns:
            True if progress changed, False if the report was ignored.

        Raises:
            SessionFinalizedException: If the session is already terminal.
        """
        self._ensure_mutable()
        clamped = max(0, min(int(percent), _MAX_IN_FLIGHT_PROGRESS))
        if clamped <= self.progress:
            return False
        self.progress = clamped
        self.updated_at = utc_now()
        return True

    def attach_transport(
        self,
        transport_handle: str | None = None,
        content_hash: str | None = None,
    ) -> None:
        """Record the transport's handle (e.g. upload URL) and the content fingerprint."""
        self._ensure_mutable()
        if transport_handle is not None:
            self.transport_handle = transport_handle
        if content_hash is not None:
            self.content_hash = content_hash
        self.updated_at = utc_now()

    def complete(self) -> None:
        """Mark the session completed; progress becomes 100."""
        self._ensure_mutable()
        self.status = UploadStatus.COMPLETED
        self.progress = PROGRESS_COMPLETE
        self.updated_at = utc_now()

    def fail(self, error: str | None = None) -> None:
        """Mark the session failed; progress becomes the -1 sentinel."""
        self._ensure_mutable()
        self.status = UploadStatus.FAILED
        self.progress = PROGRESS_FAILED
        self.error = error
        self.updated_at = utc_now()

    def snapshot(self) -> UploadSessionSnapshot:
        """Return an immutable copy of the current state."""
        return UploadSessionSnapshot(
            session_id=self.session_id,
            filename=self.filename,
            kind=self.kind,
            progress=self.progress,
            status=self.status,
            content_hash=self.content_hash,
            transport_handle=self.transport_handle,
            error=self.error,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
