"""Messaging: Redis pub/sub for upload status snapshots."""

from media_upload.infrastructure.messaging.redis_pubsub import (
    RedisStatusPublisher,
    StatusMessage,
    StatusSubscriber,
)

__all__ = [
    "RedisStatusPublisher",
    "StatusMessage",
    "StatusSubscriber",
]
