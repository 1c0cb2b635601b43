"""Application services: upload status broadcasting."""

from media_upload.application.services.status_broadcaster import (
    SnapshotChannel,
    StatusBroadcaster,
)

__all__ = [
    "SnapshotChannel",
    "StatusBroadcaster",
]
