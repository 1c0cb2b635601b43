"""Tenant CDN configuration, resolved once and cached."""

from __future__ import annotations

import asyncio
import logging

from media_upload.application.interfaces.services import IMediaApiClient
from media_upload.domain.value_objects.core import CdnConfig
from media_upload.infrastructure.exceptions import BackendRequestError

logger = logging.getLogger(__name__)


class StaticCdnConfigProvider:
    """Fixed CDN config (ICdnConfigProvider). For tests and hosts that already know it."""

    def __init__(self, config: CdnConfig) -> None:
        self.config = config

    async def get_config(self) -> CdnConfig:
        return self.config


class CachedCdnConfigProvider:
    """Loads CDN config from tenant settings on first use (ICdnConfigProvider).

    The result of a successful lookup is cached for the life of the provider,
    even when the CDN fields are empty; a failed lookup is not cached, so a
    later call tries again. invalidate() forces a reload.
    """

    def __init__(self, api: IMediaApiClient) -> None:
        self.api = api
        self._config: CdnConfig | None = None
        self._lock = asyncio.Lock()

    async def get_config(self) -> CdnConfig:
        if self._config is not None:
            return self._config
        async with self._lock:
            if self._config is not None:
                return self._config
            try:
                data = await self.api.get_tenant_settings()
            except BackendRequestError as e:
                logger.warning("Failed to load tenant CDN settings: %s", e.message)
                return CdnConfig()
            self._config = CdnConfig.from_tenant_settings(data)
            return self._config

    def invalidate(self) -> None:
        """Drop the cached config (e.g. after tenant settings change)."""
        self._config = None
