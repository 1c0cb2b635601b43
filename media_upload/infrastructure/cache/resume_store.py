"""Stores for interrupted resumable transfers (fingerprint -> ResumeEntry).

InMemoryResumeStore lives as long as the process; RedisResumeStore lets a
restarted process resume. Redis failures degrade to "nothing to resume"
rather than failing the upload.
"""

from __future__ import annotations

import json
import logging

import redis.asyncio as redis

from media_upload.application.dtos.upload import ResumeEntry
from media_upload.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "resume"


class InMemoryResumeStore:
    """Process-local resume store (IResumeStore)."""

    def __init__(self) -> None:
        self._entries: dict[str, ResumeEntry] = {}

    async def get(self, fingerprint: str) -> ResumeEntry | None:
        return self._entries.get(fingerprint)

    async def set(self, fingerprint: str, entry: ResumeEntry) -> None:
        self._entries[fingerprint] = entry

    async def delete(self, fingerprint: str) -> None:
        self._entries.pop(fingerprint, None)

    def __len__(self) -> int:
        return len(self._entries)


class RedisResumeStore:
    """Redis-backed resume store with TTL (IResumeStore).

    Call connect() before use and disconnect() on shutdown. When Redis is
    unavailable every lookup misses and writes are skipped.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize store.

        Args:
            redis_client: Optional Redis client for testing or DI.
            settings: Settings for connection and TTL; defaults to get_settings().
        """
        self.redis = redis_client
        self.settings = settings or get_settings()
        self.ttl = self.settings.resume_store_ttl_seconds
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self._connected:
            return
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
            logger.info(
                "Resume store connected: %s:%s",
                self.settings.redis_host,
                self.settings.redis_port,
            )
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Resume store connection failed: %s. Resume disabled.", e)
            self._connected = False
            self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.close()
            self.redis = None
            self._connected = False
            logger.info("Resume store disconnected")

    def is_available(self) -> bool:
        """Return True if Redis is connected."""
        return self._connected and self.redis is not None

    @staticmethod
    def _key(fingerprint: str) -> str:
        return f"{KEY_PREFIX}:{fingerprint}"

    async def get(self, fingerprint: str) -> ResumeEntry | None:
        if not self.is_available() or self.redis is None:
            return None
        try:
            value = await self.redis.get(self._key(fingerprint))
        except redis.RedisError:
            logger.exception("Resume store get error for %s", fingerprint)
            return None
        if value is None:
            return None
        try:
            return ResumeEntry.from_dict(json.loads(value))
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable resume entry for %s", fingerprint)
            return None

    async def set(self, fingerprint: str, entry: ResumeEntry) -> None:
        if not self.is_available() or self.redis is None:
            return
        try:
            await self.redis.setex(
                self._key(fingerprint), self.ttl, json.dumps(entry.to_dict())
            )
        except redis.RedisError:
            logger.exception("Resume store set error for %s", fingerprint)

    async def delete(self, fingerprint: str) -> None:
        if not self.is_available() or self.redis is None:
            return
        try:
            await self.redis.delete(self._key(fingerprint))
        except redis.RedisError:
            logger.exception("Resume store delete error for %s", fingerprint)


def create_resume_store(
    settings: Settings | None = None,
) -> InMemoryResumeStore | RedisResumeStore:
    """Create the resume store selected by settings.resume_store_backend."""
    s = settings or get_settings()
    if s.resume_store_backend == "redis":
        return RedisResumeStore(settings=s)
    return InMemoryResumeStore()
