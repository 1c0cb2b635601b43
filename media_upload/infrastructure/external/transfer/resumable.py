"""Resumable chunked transfers (TUS 1.0.0 over httpx).

Flow per transfer: look up a previous attempt by source fingerprint and
resume from the server's Upload-Offset (HEAD), otherwise create a new
upload (POST). Then PATCH chunks, taking progress only from the offset
the server acknowledges. Transient failures are retried per the backoff
policy; anything else fails the transfer immediately.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

import aiofiles
import httpx

from media_upload.application.dtos.upload import ResumeEntry, TransferReceipt
from media_upload.application.interfaces.services import (
    IBackoffPolicy,
    IResumeStore,
    ProgressCallback,
)
from media_upload.core.constants import (
    HEADER_TUS_RESUMABLE,
    HEADER_UPLOAD_LENGTH,
    HEADER_UPLOAD_METADATA,
    HEADER_UPLOAD_OFFSET,
    TUS_CONTENT_TYPE,
    TUS_VERSION,
)
from media_upload.domain.enums import TransferState
from media_upload.domain.value_objects.core import (
    ResumableSessionCredentials,
    SourceFile,
)
from media_upload.infrastructure.cache.resume_store import InMemoryResumeStore
from media_upload.infrastructure.exceptions import (
    CredentialsExpiredError,
    TransferError,
)
from media_upload.infrastructure.external.transfer.backoff import FixedScheduleBackoff
from media_upload.infrastructure.external.transfer.fingerprint import (
    compute_fingerprint,
)
from media_upload.shared.telemetry.tracing import (
    add_span_attributes,
    add_span_event,
    traced,
)
from media_upload.shared.utils.cancellation import CancellationToken
from media_upload.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024  # 5MB

# Statuses worth retrying besides 5xx (409: offset mismatch, re-sync first)
_RETRYABLE_4XX = frozenset({409, 423, 429})
# A stored upload URL the server no longer knows about
_STALE_UPLOAD_STATUSES = frozenset({404, 410})


class _RetryableTransferError(Exception):
    """Internal: a request failed in a way the backoff policy may retry."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


@dataclass
class _TransferContext:
    """Mutable per-transfer state (one per transfer() call)."""

    source: SourceFile
    credentials: ResumableSessionCredentials
    fingerprint: str
    cancel_token: CancellationToken | None
    state: TransferState = TransferState.NEGOTIATING
    upload_url: str | None = None
    offset: int = 0
    resumed_from_offset: int = 0
    attempt: int = 0
    needs_sync: bool = False
    remote_object_id: str | None = None
    container_id: str | None = None


def _is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in _RETRYABLE_4XX


def _encode_metadata(metadata: dict[str, str]) -> str:
    """Upload-Metadata header: comma-separated 'key base64(value)' pairs."""
    return ",".join(
        f"{key} {base64.b64encode(value.encode()).decode()}"
        for key, value in metadata.items()
    )


def _parse_offset(response: httpx.Response) -> int | None:
    raw = response.headers.get(HEADER_UPLOAD_OFFSET)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class ResumableTransport:
    """TUS client for large video transfers (IResumableTransport).

    One instance can drive many concurrent transfers; all per-transfer
    state lives in a _TransferContext.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        resume_store: IResumeStore | None = None,
        backoff: IBackoffPolicy | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
        timeout: float = 60.0,
    ) -> None:
        """Initialize transport.

        Args:
            http_client: Shared client; one is created (and owned) when omitted.
            resume_store: Where interrupted transfers are remembered.
            backoff: Retry delay policy for transient failures.
            chunk_size: Bytes per PATCH request.
            sleep: Awaitable sleep (injectable for tests).
            clock: Current UTC time (injectable for expiry tests).
            timeout: Per-request timeout in seconds for an owned client.
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=timeout)
        self.resume_store = resume_store if resume_store is not None else InMemoryResumeStore()
        self.backoff = backoff or FixedScheduleBackoff()
        self.chunk_size = chunk_size
        self._sleep = sleep
        self._clock = clock

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self.http.aclose()

    @traced("resumable_transport.transfer")
    async def transfer(
        self,
        source: SourceFile,
        credentials: ResumableSessionCredentials,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        on_upload_url: Callable[[str, str], None] | None = None,
    ) -> TransferReceipt:
        """Transfer source to credentials.transfer_endpoint, resuming when possible.

        Args:
            source: File to send.
            credentials: Negotiated credentials (headers and endpoint).
            on_progress: Called with (bytes_acked, bytes_total) after each acknowledgement.
            cancel_token: Polled before every request.
            on_upload_url: Called with (upload_url, fingerprint) once the upload URL is known.

        Returns:
            TransferReceipt for the finished transfer.

        Raises:
            TransferError: Non-transient failure or retry budget exhausted.
            CredentialsExpiredError: Credentials expired before the transfer finished.
            UploadCancelledException: cancel_token was cancelled.
        """
        fingerprint = await compute_fingerprint(source)
        ctx = _TransferContext(
            source=source,
            credentials=credentials,
            fingerprint=fingerprint,
            cancel_token=cancel_token,
            remote_object_id=credentials.remote_object_id,
            container_id=credentials.container_id,
        )
        try:
            await self._retrying(ctx, lambda: self._open(ctx))
            assert ctx.upload_url is not None
            if on_upload_url:
                on_upload_url(ctx.upload_url, fingerprint)
            if ctx.offset > 0 and on_progress:
                on_progress(ctx.offset, source.size)

            self._set_state(ctx, TransferState.TRANSFERRING)
            async with aiofiles.open(source.path, "rb") as f:
                while ctx.offset < source.size:
                    ctx.offset = await self._retrying(
                        ctx, lambda: self._transfer_chunk(ctx, f, on_progress)
                    )
                    ctx.attempt = 0
                    if on_progress:
                        on_progress(ctx.offset, source.size)
        except Exception:
            self._set_state(ctx, TransferState.FAILED)
            raise

        self._set_state(ctx, TransferState.FINALIZING)
        await self.resume_store.delete(fingerprint)
        self._set_state(ctx, TransferState.DONE)
        add_span_attributes(
            bytes_transferred=source.size - ctx.resumed_from_offset,
            resumed_from_offset=ctx.resumed_from_offset,
        )
        return TransferReceipt(
            upload_url=ctx.upload_url,
            fingerprint=fingerprint,
            bytes_transferred=source.size - ctx.resumed_from_offset,
            resumed_from_offset=ctx.resumed_from_offset,
            remote_object_id=ctx.remote_object_id,
            container_id=ctx.container_id,
        )

    def _set_state(self, ctx: _TransferContext, state: TransferState) -> None:
        if ctx.state is not state:
            logger.debug(
                "Transfer %s (%s): %s -> %s",
                ctx.source.filename,
                ctx.fingerprint[:16],
                ctx.state.value,
                state.value,
            )
            ctx.state = state

    async def _retrying(
        self, ctx: _TransferContext, operation: Callable[[], Awaitable[T]]
    ) -> T:
        """Run operation, retrying transient failures per the backoff policy."""
        while True:
            try:
                return await operation()
            except _RetryableTransferError as e:
                ctx.attempt += 1
                delay = self.backoff.next_delay(ctx.attempt)
                if delay is None:
                    logger.error(
                        "Transfer %s failed after %s attempts at offset %s: %s",
                        ctx.source.filename,
                        ctx.attempt,
                        ctx.offset,
                        e.reason,
                    )
                    raise TransferError(
                        e.reason,
                        transient=True,
                        status_code=e.status_code,
                        offset=ctx.offset,
                    ) from e
                self._set_state(ctx, TransferState.RETRYING)
                add_span_event(
                    "transfer.retry",
                    {"attempt": ctx.attempt, "offset": ctx.offset, "delay": delay},
                )
                logger.warning(
                    "Transfer %s error at offset %s (attempt %s): %s; retrying in %ss",
                    ctx.source.filename,
                    ctx.offset,
                    ctx.attempt,
                    e.reason,
                    delay,
                )
                await self._sleep(delay)
                ctx.needs_sync = ctx.upload_url is not None

    def _headers(self, ctx: _TransferContext, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {HEADER_TUS_RESUMABLE: TUS_VERSION, **ctx.credentials.tus_headers()}
        if extra:
            headers.update(extra)
        return headers

    async def _send(
        self,
        ctx: _TransferContext,
        method: str,
        url: str,
        headers: dict[str, str],
        content: bytes | None = None,
        allow_statuses: frozenset[int] = frozenset(),
    ) -> httpx.Response:
        """Issue one request after cancellation and expiry checks; classify failures."""
        if ctx.cancel_token is not None:
            ctx.cancel_token.raise_if_cancelled()
        if ctx.credentials.is_expired(self._clock()):
            raise CredentialsExpiredError(
                ctx.credentials.remote_object_id, ctx.credentials.expiration_time
            )
        try:
            response = await self.http.request(method, url, headers=headers, content=content)
        except httpx.TransportError as e:
            raise _RetryableTransferError(f"{type(e).__name__}: {e}") from e

        status = response.status_code
        if response.is_success or status in allow_statuses:
            return response
        if status in (401, 403) and ctx.credentials.is_expired(self._clock()):
            raise CredentialsExpiredError(
                ctx.credentials.remote_object_id, ctx.credentials.expiration_time
            )
        reason = f"{method} {url} returned HTTP {status}"
        if _is_retryable_status(status):
            raise _RetryableTransferError(reason, status)
        raise TransferError(reason, transient=False, status_code=status, offset=ctx.offset)

    async def _open(self, ctx: _TransferContext) -> None:
        """Resume a stored upload or create a new one; sets upload_url and offset."""
        entry = await self.resume_store.get(ctx.fingerprint)
        if entry is not None:
            self._set_state(ctx, TransferState.RESUMING)
            offset = await self._fetch_offset(ctx, entry.upload_url)
            if offset is not None:
                ctx.upload_url = entry.upload_url
                ctx.offset = ctx.resumed_from_offset = min(offset, ctx.source.size)
                ctx.remote_object_id = entry.remote_object_id or ctx.remote_object_id
                ctx.container_id = entry.container_id or ctx.container_id
                logger.info(
                    "Resuming %s from offset %s of %s",
                    ctx.source.filename,
                    ctx.offset,
                    ctx.source.size,
                )
                return
            logger.info("Discarding stale resume entry for %s", ctx.source.filename)
            await self.resume_store.delete(ctx.fingerprint)
        await self._create(ctx)

    async def _create(self, ctx: _TransferContext) -> None:
        self._set_state(ctx, TransferState.STARTING)
        endpoint = ctx.credentials.transfer_endpoint
        metadata = _encode_metadata(
            {"filetype": ctx.source.content_type, "title": ctx.source.filename}
        )
        response = await self._send(
            ctx,
            "POST",
            endpoint,
            self._headers(
                ctx,
                {
                    HEADER_UPLOAD_LENGTH: str(ctx.source.size),
                    HEADER_UPLOAD_METADATA: metadata,
                },
            ),
        )
        location = response.headers.get("Location")
        if not location:
            raise TransferError(
                "Upload creation response has no Location header",
                status_code=response.status_code,
            )
        ctx.upload_url = str(httpx.URL(endpoint).join(location))
        ctx.offset = 0
        await self.resume_store.set(
            ctx.fingerprint,
            ResumeEntry(
                upload_url=ctx.upload_url,
                remote_object_id=ctx.remote_object_id,
                container_id=ctx.container_id,
                size=ctx.source.size,
            ),
        )
        logger.info("Created upload for %s at %s", ctx.source.filename, ctx.upload_url)

    async def _fetch_offset(self, ctx: _TransferContext, upload_url: str) -> int | None:
        """HEAD the upload; None when the server no longer has it."""
        response = await self._send(
            ctx,
            "HEAD",
            upload_url,
            self._headers(ctx),
            allow_statuses=_STALE_UPLOAD_STATUSES,
        )
        if response.status_code in _STALE_UPLOAD_STATUSES:
            return None
        return _parse_offset(response)

    async def _transfer_chunk(
        self,
        ctx: _TransferContext,
        f: aiofiles.threadpool.binary.AsyncBufferedReader,
        on_progress: ProgressCallback | None,
    ) -> int:
        """Send the chunk at the current offset; return the acknowledged offset."""
        assert ctx.upload_url is not None
        if ctx.needs_sync:
            offset = await self._fetch_offset(ctx, ctx.upload_url)
            if offset is None:
                raise TransferError(
                    "Upload no longer exists on the server", offset=ctx.offset
                )
            ctx.offset = offset
            ctx.needs_sync = False
            self._set_state(ctx, TransferState.TRANSFERRING)
            if on_progress:
                on_progress(ctx.offset, ctx.source.size)
            if ctx.offset >= ctx.source.size:
                return ctx.offset

        await f.seek(ctx.offset)
        chunk = await f.read(self.chunk_size)
        if not chunk:
            raise TransferError(
                "Source file is shorter than its recorded size", offset=ctx.offset
            )
        response = await self._send(
            ctx,
            "PATCH",
            ctx.upload_url,
            self._headers(
                ctx,
                {
                    HEADER_UPLOAD_OFFSET: str(ctx.offset),
                    "Content-Type": TUS_CONTENT_TYPE,
                },
            ),
            content=chunk,
        )
        acked = _parse_offset(response)
        if acked is None or acked < ctx.offset:
            raise TransferError(
                "Server acknowledged an invalid Upload-Offset",
                status_code=response.status_code,
                offset=ctx.offset,
            )
        if acked == ctx.offset:
            raise _RetryableTransferError(
                "Server did not advance Upload-Offset", response.status_code
            )
        return acked
