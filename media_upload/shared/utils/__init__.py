"""Shared utilities: datetime, generators, cancellation."""

from media_upload.shared.utils.cancellation import CancellationToken
from media_upload.shared.utils.datetime import from_timestamp_utc, utc_now
from media_upload.shared.utils.generators import generate_session_id

__all__ = [
    "CancellationToken",
    "generate_session_id",
    "utc_now",
    "from_timestamp_utc",
]
