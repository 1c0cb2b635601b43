"""Upload orchestration: one entry point per media path.

Each call registers a session with the broadcaster before any I/O,
drives the matching transport, commits the asset, then moves the
session to its terminal state. Failures mark the session failed and are
re-raised to the caller.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import itertools
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from media_upload.application.dtos.upload import RegisteredAsset, UploadResult
from media_upload.application.interfaces.services import (
    IAssetRegistrar,
    ICdnConfigProvider,
    IDirectTransport,
    IMediaApiClient,
    IResumableTransport,
    IStatusObserver,
    ProgressCallback,
)
from media_upload.application.services.status_broadcaster import (
    Snapshot,
    SnapshotChannel,
    StatusBroadcaster,
)
from media_upload.core.config import Settings, get_settings
from media_upload.domain.entities.upload_session import UploadSession
from media_upload.domain.enums import MediaKind
from media_upload.domain.exceptions import (
    ConfigurationException,
    UploadException,
    ValidationException,
)
from media_upload.domain.value_objects.core import (
    RemoteReference,
    SourceFile,
    TransferDescriptor,
)
from media_upload.shared.telemetry.tracing import add_span_attributes, traced
from media_upload.shared.utils.cancellation import CancellationToken
from media_upload.shared.utils.generators import generate_session_id

if TYPE_CHECKING:
    from media_upload.infrastructure.exceptions import RegistrationError

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[UploadResult], None]

# Kinds whose signed-URL uploads are finalized under their own kind
_FILE_REGISTRATION_KINDS = frozenset({MediaKind.AUDIO, MediaKind.PDF, MediaKind.OTHER})


@dataclass(frozen=True)
class _Outcome:
    """What a successful upload path hands back to _run."""

    asset: RegisteredAsset | None = None
    refresh: bool = False
    reference: str | None = None


class UploadOrchestrator:
    """Coordinates sessions, transports and registrars for every upload path.

    Dependencies are injected; use from_settings() for a fully wired
    instance. One instance may run many uploads concurrently on one event
    loop; settings.max_concurrent_uploads caps simultaneous byte transfers.
    """

    def __init__(
        self,
        api: IMediaApiClient,
        broadcaster: StatusBroadcaster,
        resumable_transport: IResumableTransport,
        direct_transport: IDirectTransport,
        registrar: IAssetRegistrar,
        cdn_config_provider: ICdnConfigProvider,
        settings: Settings | None = None,
        session_id_factory: Callable[[], str] = generate_session_id,
    ) -> None:
        self.api = api
        self.broadcaster = broadcaster
        self.resumable = resumable_transport
        self.direct = direct_transport
        self.registrar = registrar
        self.cdn_config = cdn_config_provider
        self.settings = settings or get_settings()
        self._new_session_id = session_id_factory
        cap = self.settings.max_concurrent_uploads
        self._transfer_slots = asyncio.Semaphore(cap) if cap else None
        self._cancel_tokens: dict[str, CancellationToken] = {}
        self._refresh_listeners: dict[int, Callable[[], None]] = {}
        self._listener_tokens = itertools.count()
        # Resources created by from_settings(), closed by aclose()
        self._owned: list[Any] = []

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> UploadOrchestrator:
        """Build an orchestrator with HTTP clients, transports and stores from settings."""
        from media_upload.core.lifespan import build_orchestrator

        return build_orchestrator(settings or get_settings())

    async def aclose(self) -> None:
        """Close resources this orchestrator owns (HTTP clients, Redis)."""
        for resource in reversed(self._owned):
            close = getattr(resource, "aclose", None) or getattr(resource, "disconnect", None)
            if close is not None:
                await close()
        self._owned.clear()

    async def __aenter__(self) -> UploadOrchestrator:
        for resource in self._owned:
            connect = getattr(resource, "connect", None)
            if connect is not None:
                await connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    # Status pass-throughs

    def statuses(self) -> Snapshot:
        """Current snapshot of every tracked session."""
        return self.broadcaster.snapshot()

    def subscribe(self, observer: IStatusObserver) -> Callable[[], None]:
        """Subscribe to status notifications; returns the unsubscribe function."""
        return self.broadcaster.subscribe(observer)

    def channel(self) -> SnapshotChannel:
        return self.broadcaster.channel()

    def clear(self, include_active: bool = False) -> int:
        """Drop finished sessions from the status table (all sessions with include_active)."""
        return self.broadcaster.clear(include_active)

    def delete_upload(self, session_id: str) -> bool:
        """Cancel the upload if it is still running and stop tracking it."""
        self.cancel(session_id)
        return self.broadcaster.remove(session_id)

    @property
    def is_uploading(self) -> bool:
        return self.broadcaster.is_uploading

    def cancel(self, session_id: str) -> bool:
        """Request cancellation of an in-flight upload.

        The transport stops before its next network operation and the
        session ends failed. Returns False when nothing is running under
        session_id.
        """
        token = self._cancel_tokens.get(session_id)
        if token is None:
            return False
        token.cancel()
        logger.info("Cancellation requested for upload %s", session_id)
        return True

    # Asset refresh signal

    def on_refresh(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Call listener whenever the backend asset list changed; returns unsubscribe."""
        token = next(self._listener_tokens)
        self._refresh_listeners[token] = listener

        def unsubscribe() -> None:
            self._refresh_listeners.pop(token, None)

        return unsubscribe

    def _emit_refresh(self) -> None:
        for listener in list(self._refresh_listeners.values()):
            try:
                listener()
            except Exception:
                logger.exception("Error in asset refresh listener")

    # Session plumbing

    def _start_session(
        self,
        filename: str,
        kind: MediaKind,
        cancel_token: CancellationToken | None,
    ) -> tuple[UploadSession, CancellationToken]:
        session = UploadSession(
            session_id=self._new_session_id(), filename=filename, kind=kind
        )
        self.broadcaster.register(session)
        token = cancel_token or CancellationToken(session.session_id)
        self._cancel_tokens[session.session_id] = token
        add_span_attributes(session_id=session.session_id, kind=kind.value)
        return session, token

    def _progress_reporter(self, session_id: str) -> ProgressCallback:
        def report(done: int, total: int) -> None:
            if total > 0:
                self.broadcaster.report_progress(session_id, done * 100 // total)

        return report

    @contextlib.asynccontextmanager
    async def _transfer_slot(self, token: CancellationToken) -> AsyncIterator[None]:
        """Hold one of max_concurrent_uploads slots for the byte transfer."""
        if self._transfer_slots is None:
            yield
            return
        async with self._transfer_slots:
            token.raise_if_cancelled()
            yield

    async def _run(
        self,
        session: UploadSession,
        work: Callable[[], Awaitable[_Outcome]],
        on_complete: CompletionCallback | None,
    ) -> UploadResult:
        session_id = session.session_id
        try:
            outcome = await work()
        except UploadException as e:
            self.broadcaster.fail(session_id, e.message)
            raise
        except asyncio.CancelledError:
            self.broadcaster.fail(session_id, "Upload task cancelled")
            raise
        except Exception as e:
            logger.exception("Unexpected error in upload %s", session_id)
            self.broadcaster.fail(session_id, str(e) or type(e).__name__)
            raise
        finally:
            self._cancel_tokens.pop(session_id, None)

        if not self.broadcaster.complete(session_id):
            # Removed from the table mid-flight; keep the returned snapshot honest
            session.complete()
        result = UploadResult(
            session=session.snapshot(),
            kind=session.kind,
            refresh=outcome.refresh,
            asset_id=outcome.asset.asset_id if outcome.asset else None,
            reference=outcome.reference,
        )
        if outcome.refresh:
            self._emit_refresh()
        if on_complete is not None:
            try:
                on_complete(result)
            except Exception:
                logger.exception("Error in upload completion callback for %s", session_id)
        return result

    # Entry points

    def _validate_video(self, source: SourceFile) -> None:
        if source.media_kind is not MediaKind.VIDEO:
            raise ValidationException(
                f"{source.filename} is not a video ({source.content_type})",
                field="content_type",
            )
        if source.size <= 0:
            raise ValidationException(f"{source.filename} is empty", field="size")
        limit = self.settings.max_video_size
        if limit is not None and source.size > limit:
            raise ValidationException(
                f"{source.filename} is larger than {limit} bytes", field="size"
            )

    @traced("upload_orchestrator.upload_video")
    async def upload_video(
        self,
        source: SourceFile,
        descriptor: TransferDescriptor,
        on_complete: CompletionCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> UploadResult:
        """Upload a video through the resumable transport and create its asset.

        Raises:
            ValidationException: Source is not a non-empty video.
            NegotiationError: Credentials could not be obtained (nothing sent).
            TransferError: Transfer failed or its retry budget ran out.
            CredentialsExpiredError: Credentials expired mid-transfer.
            RegistrationError: Bytes are stored but the asset commit failed.
            UploadCancelledException: cancel() was called.
        """
        session, token = self._start_session(source.filename, MediaKind.VIDEO, cancel_token)
        session_id = session.session_id

        async def work() -> _Outcome:
            self._validate_video(source)
            async with self._transfer_slot(token):
                token.raise_if_cancelled()
                credentials = await self.api.negotiate_video_upload(descriptor.filename)
                receipt = await self.resumable.transfer(
                    source,
                    credentials,
                    on_progress=self._progress_reporter(session_id),
                    cancel_token=token,
                    on_upload_url=lambda url, fingerprint: self.broadcaster.attach_transport(
                        session_id, url, fingerprint
                    ),
                )
            reference = RemoteReference(
                remote_object_id=receipt.remote_object_id or credentials.remote_object_id,
                container_id=receipt.container_id or credentials.container_id,
            )
            asset = await self.registrar.register(MediaKind.VIDEO, reference, descriptor)
            return _Outcome(asset=asset, refresh=True)

        return await self._run(session, work, on_complete)

    @traced("upload_orchestrator.upload_file")
    async def upload_file(
        self,
        source: SourceFile,
        descriptor: TransferDescriptor,
        on_complete: CompletionCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> UploadResult:
        """Upload a file with one PUT to a signed URL, then finalize it.

        Raises:
            NegotiationError: No signed URL could be obtained.
            TransferError: The PUT failed (not retried).
            RegistrationError: The PUT succeeded but finalization failed.
            UploadCancelledException: cancel() was called.
        """
        session, token = self._start_session(
            source.filename, descriptor.media_kind, cancel_token
        )
        session_id = session.session_id

        async def work() -> _Outcome:
            async with self._transfer_slot(token):
                token.raise_if_cancelled()
                grant = await self.api.negotiate_file_upload(descriptor)
                self.broadcaster.attach_transport(session_id, grant.file_id)
                await self.direct.put_signed_url(
                    grant.signed_url,
                    source,
                    on_progress=self._progress_reporter(session_id),
                    cancel_token=token,
                )
            kind = (
                descriptor.media_kind
                if descriptor.media_kind in _FILE_REGISTRATION_KINDS
                else MediaKind.OTHER
            )
            asset = await self.registrar.register(
                kind, RemoteReference(file_id=grant.file_id), descriptor
            )
            return _Outcome(asset=asset, refresh=True)

        return await self._run(session, work, on_complete)

    @traced("upload_orchestrator.upload_image")
    async def upload_image(
        self,
        source: SourceFile,
        descriptor: TransferDescriptor,
        module_name: str,
        on_complete: CompletionCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> UploadResult:
        """Upload an image straight to the CDN; register it for managed modules.

        For modules in settings.managed_image_modules the result reference is
        the backend's imgUrl and refresh is set; otherwise it is the CDN
        public id and nothing is registered.

        Raises:
            ConfigurationException: CDN cloud name or preset missing (nothing sent).
            TransferError: The CDN upload failed.
            RegistrationError: Uploaded to the CDN but registration failed.
            UploadCancelledException: cancel() was called.
        """
        session, token = self._start_session(source.filename, MediaKind.IMAGE, cancel_token)
        session_id = session.session_id

        async def work() -> _Outcome:
            config = await self.cdn_config.get_config()
            if not config.is_complete:
                raise ConfigurationException(
                    "CDN cloud name and upload preset are not configured",
                    setting="cloud_name" if not config.cloud_name else "upload_preset",
                )
            url = f"{self.settings.cdn_upload_base_url.rstrip('/')}/{config.cloud_name}/upload"
            fields = {"upload_preset": config.upload_preset, "folder": config.folder}
            async with self._transfer_slot(token):
                token.raise_if_cancelled()
                uploaded = await self.direct.post_multipart(
                    url,
                    fields,
                    source,
                    on_progress=self._progress_reporter(session_id),
                    cancel_token=token,
                )
            self.broadcaster.attach_transport(session_id, uploaded.object_reference)
            if module_name not in self.settings.managed_image_modules:
                return _Outcome(reference=uploaded.object_reference)
            reference = RemoteReference(
                object_reference=uploaded.object_reference,
                folder=uploaded.folder or config.folder,
            )
            asset = await self.registrar.register(
                MediaKind.IMAGE,
                reference,
                dataclasses.replace(descriptor, product_type=module_name),
            )
            return _Outcome(asset=asset, refresh=True, reference=asset.reference)

        return await self._run(session, work, on_complete)

    @traced("upload_orchestrator.upload_link")
    async def upload_link(
        self,
        descriptor: TransferDescriptor,
        on_complete: CompletionCallback | None = None,
    ) -> UploadResult:
        """Create a link asset; descriptor.filename carries the link."""
        session, _ = self._start_session(descriptor.filename, MediaKind.LINK, None)

        async def work() -> _Outcome:
            asset = await self.registrar.register(
                MediaKind.LINK, RemoteReference(link=descriptor.filename), descriptor
            )
            return _Outcome(asset=asset, refresh=True)

        return await self._run(session, work, on_complete)

    async def upload(
        self,
        source: SourceFile | None,
        descriptor: TransferDescriptor,
        module_name: str = "",
        on_complete: CompletionCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> UploadResult:
        """Route to the right path by media kind.

        Downloadable media always goes through the signed-URL file path;
        otherwise videos are resumable, images go to the CDN, links are
        committed directly and everything else is a file.
        """
        kind = descriptor.media_kind
        if kind is MediaKind.LINK:
            return await self.upload_link(descriptor, on_complete)
        if source is None:
            raise ValidationException(
                f"A source file is required for {kind.value} uploads", field="source"
            )
        if kind is MediaKind.OTHER:
            kind = source.media_kind
        if descriptor.is_downloadable:
            return await self.upload_file(source, descriptor, on_complete, cancel_token)
        if kind is MediaKind.VIDEO:
            return await self.upload_video(source, descriptor, on_complete, cancel_token)
        if kind is MediaKind.IMAGE:
            return await self.upload_image(
                source,
                descriptor,
                module_name or descriptor.product_type,
                on_complete,
                cancel_token,
            )
        return await self.upload_file(source, descriptor, on_complete, cancel_token)

    @traced("upload_orchestrator.retry_registration")
    async def retry_registration(
        self,
        error: RegistrationError,
        on_complete: CompletionCallback | None = None,
    ) -> UploadResult:
        """Re-issue only the commit for a partial failure, under a new session."""
        descriptor = error.descriptor
        session, _ = self._start_session(descriptor.filename, error.kind, None)

        async def work() -> _Outcome:
            asset = await self.registrar.register(
                error.kind, error.remote_reference, descriptor
            )
            return _Outcome(asset=asset, refresh=True, reference=asset.reference)

        return await self._run(session, work, on_complete)

    # Asset list

    async def list_assets(self) -> Any:
        """Fetch the asset list from the backend (never cached)."""
        return await self.api.list_assets()

    async def delete_asset(self, asset_id: str) -> None:
        """Delete an asset and emit the refresh signal."""
        await self.api.delete_asset(asset_id)
        logger.info("Deleted asset %s", asset_id)
        self._emit_refresh()
