"""Application layer: interfaces, status broadcasting, upload use cases.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (backend API, transports, stores).
"""

from media_upload.application.services.status_broadcaster import (
    SnapshotChannel,
    StatusBroadcaster,
)
from media_upload.application.use_cases.uploads import UploadOrchestrator

__all__ = [
    "SnapshotChannel",
    "StatusBroadcaster",
    "UploadOrchestrator",
]
