"""Cooperative cancellation for in-flight transfers."""

from media_upload.domain.exceptions import UploadCancelledException


class CancellationToken:
    """Flag a transport polls before each network operation.

    Cancelling is idempotent. The transport raises UploadCancelledException
    on its next check; the session then ends as failed.
    """

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id = session_id
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        """Raise UploadCancelledException when cancel() has been called."""
        if self._cancelled:
            raise UploadCancelledException(self.session_id)
