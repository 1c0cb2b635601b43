"""Application use cases: one entry point per upload path."""

from media_upload.application.use_cases.uploads import UploadOrchestrator

__all__ = [
    "UploadOrchestrator",
]
