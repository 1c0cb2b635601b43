"""Single-shot transfers: PUT to a pre-signed URL, multipart POST to a CDN.

One request per call and no retry; a full restart is cheap for the
payloads these paths carry. Progress is reported from the bytes handed
to the HTTP client.
"""

from __future__ import annotations

import io
import logging
from collections.abc import AsyncIterator

import aiofiles
import httpx

from media_upload.application.dtos.upload import CdnUploadResult
from media_upload.application.interfaces.services import ProgressCallback
from media_upload.domain.value_objects.core import SourceFile
from media_upload.infrastructure.exceptions import TransferError
from media_upload.shared.telemetry.tracing import traced
from media_upload.shared.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class _ProgressReader:
    """File-like wrapper that reports bytes read by the HTTP client."""

    def __init__(
        self,
        buffer: io.BytesIO,
        total: int,
        on_progress: ProgressCallback | None,
    ) -> None:
        self._buffer = buffer
        self._total = total
        self._on_progress = on_progress
        self._loaded = 0

    def read(self, size: int = -1) -> bytes:
        chunk = self._buffer.read(size)
        if chunk:
            self._loaded += len(chunk)
            if self._on_progress:
                self._on_progress(self._loaded, self._total)
        return chunk

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        position = self._buffer.seek(offset, whence)
        if position == 0:
            self._loaded = 0
        return position

    def tell(self) -> int:
        return self._buffer.tell()


def _raise_for_transfer(response: httpx.Response, url: str) -> None:
    if response.is_success:
        return
    status = response.status_code
    raise TransferError(
        f"Upload to {httpx.URL(url).host} returned HTTP {status}",
        transient=status >= 500,
        status_code=status,
    )


class DirectTransport:
    """Direct transfer paths (IDirectTransport)."""

    CHUNK_SIZE = 64 * 1024  # 64KB

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        """Initialize transport.

        Args:
            http_client: Client without backend auth headers (signed URLs and the
                CDN reject foreign Authorization headers); created when omitted.
            timeout: Per-request timeout in seconds for an owned client.
        """
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self.http.aclose()

    async def _stream_file(
        self, source: SourceFile, on_progress: ProgressCallback | None
    ) -> AsyncIterator[bytes]:
        loaded = 0
        async with aiofiles.open(source.path, "rb") as f:
            while chunk := await f.read(self.CHUNK_SIZE):
                loaded += len(chunk)
                yield chunk
                if on_progress:
                    on_progress(loaded, source.size)

    @traced("direct_transport.put_signed_url")
    async def put_signed_url(
        self,
        url: str,
        source: SourceFile,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """PUT source to a pre-signed URL in one request.

        Raises:
            TransferError: Network failure or non-2xx response.
            UploadCancelledException: cancel_token was cancelled before sending.
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        headers = {
            "Content-Type": source.content_type,
            "Content-Length": str(source.size),
        }
        try:
            response = await self.http.put(
                url,
                content=self._stream_file(source, on_progress),
                headers=headers,
            )
        except httpx.TransportError as e:
            raise TransferError(f"{type(e).__name__}: {e}", transient=True) from e
        _raise_for_transfer(response, url)
        logger.info("Uploaded %s (%s bytes) to signed URL", source.filename, source.size)

    @traced("direct_transport.post_multipart")
    async def post_multipart(
        self,
        url: str,
        fields: dict[str, str],
        source: SourceFile,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> CdnUploadResult:
        """POST source as multipart form data (file part named 'file').

        Returns:
            Parsed CDN response.

        Raises:
            TransferError: Network failure, non-2xx, or unparseable response.
            UploadCancelledException: cancel_token was cancelled before sending.
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        async with aiofiles.open(source.path, "rb") as f:
            data = await f.read()
        reader = _ProgressReader(io.BytesIO(data), len(data), on_progress)
        try:
            response = await self.http.post(
                url,
                data=fields,
                files={"file": (source.filename, reader, source.content_type)},
            )
        except httpx.TransportError as e:
            raise TransferError(f"{type(e).__name__}: {e}", transient=True) from e
        _raise_for_transfer(response, url)
        try:
            result = CdnUploadResult.from_response(response.json())
        except ValueError as e:
            raise TransferError(f"Invalid CDN response: {e}") from e
        logger.info(
            "Uploaded %s to CDN as %s", source.filename, result.object_reference
        )
        return result
