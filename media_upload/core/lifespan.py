"""Runtime wiring: startup and shutdown for upload processes.

Single place for building the orchestrator from settings and for
startup/shutdown of optional infrastructure (Redis resume store, status
publishing, telemetry). No upload logic here, only wiring.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from media_upload.application.services.status_broadcaster import StatusBroadcaster
from media_upload.application.use_cases.uploads import UploadOrchestrator
from media_upload.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def build_orchestrator(settings: Settings) -> UploadOrchestrator:
    """Create an orchestrator whose HTTP clients and stores it owns."""
    from media_upload.infrastructure.cache.resume_store import create_resume_store
    from media_upload.infrastructure.external.backend import (
        AssetRegistrar,
        CachedCdnConfigProvider,
        MediaApiClient,
    )
    from media_upload.infrastructure.external.transfer import (
        DirectTransport,
        FixedScheduleBackoff,
        ResumableTransport,
    )

    api = MediaApiClient(settings=settings)
    resume_store = create_resume_store(settings)
    resumable = ResumableTransport(
        resume_store=resume_store,
        backoff=FixedScheduleBackoff(settings.resumable_retry_delays),
        chunk_size=settings.resumable_chunk_size,
        timeout=settings.request_timeout_seconds,
    )
    direct = DirectTransport(timeout=settings.request_timeout_seconds)
    orchestrator = UploadOrchestrator(
        api=api,
        broadcaster=StatusBroadcaster(),
        resumable_transport=resumable,
        direct_transport=direct,
        registrar=AssetRegistrar(api),
        cdn_config_provider=CachedCdnConfigProvider(api),
        settings=settings,
    )
    orchestrator._owned.extend([resume_store, api, resumable, direct])
    return orchestrator


@dataclass
class UploadRuntime:
    """What upload_runtime() yields."""

    orchestrator: UploadOrchestrator
    tasks: list[asyncio.Task] = field(default_factory=list)


@asynccontextmanager
async def upload_runtime(
    settings: Settings | None = None,
    publish_status: bool = False,
) -> AsyncIterator[UploadRuntime]:
    """Run startup then yield; on exit run shutdown.

    Startup order: telemetry (if enabled), orchestrator resources (Redis
    resume store connect), status publisher (if publish_status). Shutdown
    runs in reverse.
    """
    settings = settings or get_settings()

    # ---- Startup ----
    telemetry = None
    if settings.telemetry_enabled:
        from media_upload.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig.from_settings(settings)
        telemetry.instrument_logging()
        telemetry.instrument_redis()
        set_telemetry(telemetry)
        logger.info("Telemetry initialized")

    orchestrator = build_orchestrator(settings)
    await orchestrator.__aenter__()
    runtime = UploadRuntime(orchestrator=orchestrator)

    publisher = None
    if publish_status:
        from media_upload.infrastructure.messaging.redis_pubsub import RedisStatusPublisher

        publisher = RedisStatusPublisher(settings=settings)
        await publisher.connect()
        if publisher.is_available():
            runtime.tasks.append(
                asyncio.create_task(publisher.forward(orchestrator.broadcaster))
            )
        else:
            logger.warning("Redis not available, upload status publishing not started")

    try:
        yield runtime
    finally:
        # ---- Shutdown ----
        for task in runtime.tasks:
            task.cancel()
        if runtime.tasks:
            await asyncio.gather(*runtime.tasks, return_exceptions=True)
        if publisher is not None:
            await publisher.disconnect()
        await orchestrator.aclose()
        if telemetry is not None:
            from media_upload.shared.telemetry.telemetry import set_telemetry

            telemetry.shutdown()
            set_telemetry(None)
