"""Redis Pub/Sub for upload status snapshots.

Publishes broadcaster snapshots as JSON so other processes (a web socket
gateway, a dashboard) can follow uploads run by this one, and subscribes
to them on the other side.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any

import redis.asyncio as redis

from media_upload.application.services.status_broadcaster import (
    SnapshotChannel,
    StatusBroadcaster,
)
from media_upload.core.config import Settings, get_settings
from media_upload.domain.entities.upload_session import UploadSessionSnapshot
from media_upload.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusMessage:
    """Upload status payload as published on Redis."""

    namespace: str
    sessions: list[dict[str, Any]]
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON publish."""
        return {
            "namespace": self.namespace,
            "sessions": self.sessions,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatusMessage:
        """Deserialize from Redis message."""
        return cls(
            namespace=data["namespace"],
            sessions=list(data["sessions"]),
            timestamp=data["timestamp"],
        )


class _RedisPubSubBase:
    """Shared Redis connection and channel logic for status pub/sub."""

    CHANNEL_PREFIX = "upload_status"

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize. Pass redis_client for DI/testing."""
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self._connected:
            return
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password.get_secret_value() if self.settings.redis_password else None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                )
                await self.redis.ping()
                self._connected = True
                logger.info("Redis status pub/sub connected")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis status pub/sub connection failed: %s", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.close()
            self._connected = False
            logger.info("Redis status pub/sub disconnected")

    def is_available(self) -> bool:
        """Return True if Redis is connected."""
        return self._connected and self.redis is not None

    def _get_channel(self, namespace: str | None = None) -> str:
        """Channel name for namespace (settings.status_channel_namespace by default)."""
        return f"{self.CHANNEL_PREFIX}:{namespace or self.settings.status_channel_namespace}"


class RedisStatusPublisher(_RedisPubSubBase):
    """Publishes upload status snapshots to a Redis channel.

    Either call publish() directly or run forward(broadcaster) as a
    background task; it drains a SnapshotChannel until cancelled.
    """

    async def publish(
        self,
        snapshots: Sequence[UploadSessionSnapshot],
        namespace: str | None = None,
    ) -> bool:
        """Publish one snapshot tuple.

        Returns:
            True if published, False if Redis unavailable or the publish failed.
        """
        if not self.is_available() or self.redis is None:
            logger.debug("Redis not available, skipping status publish")
            return False
        channel = self._get_channel(namespace)
        message = StatusMessage(
            namespace=namespace or self.settings.status_channel_namespace,
            sessions=[s.to_dict() for s in snapshots],
            timestamp=utc_now().isoformat(),
        )
        try:
            await self.redis.publish(channel, json.dumps(message.to_dict()))
        except redis.RedisError:
            logger.exception("Failed to publish upload status")
            return False
        logger.debug("Published %s upload sessions to %s", len(snapshots), channel)
        return True

    async def forward(
        self,
        broadcaster: StatusBroadcaster,
        namespace: str | None = None,
    ) -> None:
        """Publish every broadcaster notification until cancelled."""
        channel: SnapshotChannel = broadcaster.channel()
        try:
            async for snapshots in channel:
                await self.publish(snapshots, namespace)
        except asyncio.CancelledError:
            logger.info("Upload status forwarding cancelled")
            raise
        finally:
            channel.close()


class StatusSubscriber(_RedisPubSubBase):
    """Subscribes to upload status messages from Redis.

    subscribe() is reentrant: each call uses a locally-scoped PubSub that is
    closed in finally.
    """

    async def subscribe(self, namespace: str | None = None) -> AsyncIterator[StatusMessage]:
        """Yield status messages for namespace as they arrive."""
        if not self.is_available() or self.redis is None:
            logger.warning("Redis not available for status subscription")
            return
        channel = self._get_channel(namespace)
        pubsub = self.redis.pubsub()
        try:
            await pubsub.subscribe(channel)
            logger.info("Subscribed to %s", channel)
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    yield StatusMessage.from_dict(json.loads(message["data"]))
                except (json.JSONDecodeError, KeyError, TypeError):
                    logger.exception("Failed to parse upload status message")
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.close()
            logger.info("Unsubscribed from %s", channel)
