"""Resume stores for interrupted resumable transfers.

InMemoryResumeStore by default; RedisResumeStore when
settings.resume_store_backend is 'redis'.
"""

from media_upload.infrastructure.cache.resume_store import (
    InMemoryResumeStore,
    RedisResumeStore,
    create_resume_store,
)

__all__ = [
    "InMemoryResumeStore",
    "RedisResumeStore",
    "create_resume_store",
]
