"""DirectTransport: signed-URL PUT and CDN multipart POST."""

import httpx
import pytest

from media_upload.domain.exceptions import UploadCancelledException
from media_upload.infrastructure.exceptions import TransferError
from media_upload.infrastructure.external.transfer.direct import DirectTransport
from media_upload.shared.utils.cancellation import CancellationToken

SIGNED_URL = "https://bucket.test/upload?sig=abc"
CDN_URL = "https://cdn.test/v1_1/demo/upload"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestPutSignedUrl:
    async def test_put_streams_file_with_headers(self, make_source) -> None:
        seen: list[httpx.Request] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            await request.aread()
            seen.append(request)
            return httpx.Response(200)

        source = make_source("notes.pdf", b"%PDF-1.4 body")
        progress: list[tuple[int, int]] = []
        transport = DirectTransport(http_client=_client(handler))

        await transport.put_signed_url(
            SIGNED_URL, source, on_progress=lambda d, t: progress.append((d, t))
        )

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "PUT"
        assert request.headers["Content-Type"] == "application/pdf"
        assert request.headers["Content-Length"] == str(source.size)
        assert "Authorization" not in request.headers
        assert request.content == b"%PDF-1.4 body"
        assert progress[-1] == (source.size, source.size)

    async def test_non_2xx_is_not_retried(self, make_source) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(403)

        transport = DirectTransport(http_client=_client(handler))
        with pytest.raises(TransferError) as exc_info:
            await transport.put_signed_url(SIGNED_URL, make_source("a.pdf", b"x"))
        assert exc_info.value.status_code == 403
        assert exc_info.value.transient is False
        assert len(calls) == 1

    async def test_network_error_is_transfer_error(self, make_source) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused")

        transport = DirectTransport(http_client=_client(handler))
        with pytest.raises(TransferError):
            await transport.put_signed_url(SIGNED_URL, make_source("a.pdf", b"x"))

    async def test_cancelled_token_sends_nothing(self, make_source) -> None:
        calls = []
        transport = DirectTransport(
            http_client=_client(lambda r: calls.append(r) or httpx.Response(200))
        )
        token = CancellationToken("s1")
        token.cancel()
        with pytest.raises(UploadCancelledException):
            await transport.put_signed_url(
                SIGNED_URL, make_source("a.pdf", b"x"), cancel_token=token
            )
        assert calls == []


class TestPostMultipart:
    async def test_posts_form_fields_and_file(self, make_source) -> None:
        seen: list[bytes] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.read())
            return httpx.Response(
                200,
                json={
                    "public_id": "org-t1/cat",
                    "secure_url": "https://cdn.test/cat.png",
                    "folder": "org-t1",
                },
            )

        source = make_source("cat.png", b"\x89PNG data")
        progress: list[int] = []
        transport = DirectTransport(http_client=_client(handler))

        result = await transport.post_multipart(
            CDN_URL,
            {"upload_preset": "unsigned", "folder": "org-t1"},
            source,
            on_progress=lambda d, t: progress.append(d * 100 // t),
        )

        assert result.object_reference == "org-t1/cat"
        assert result.secure_url == "https://cdn.test/cat.png"
        assert result.folder == "org-t1"
        body = seen[0]
        assert b'name="upload_preset"' in body
        assert b"unsigned" in body
        assert b'name="file"; filename="cat.png"' in body
        assert b"\x89PNG data" in body
        assert progress and progress[-1] == 100

    async def test_response_without_public_id_is_error(self, make_source) -> None:
        transport = DirectTransport(
            http_client=_client(lambda r: httpx.Response(200, json={"error": "x"}))
        )
        with pytest.raises(TransferError, match="Invalid CDN response"):
            await transport.post_multipart(CDN_URL, {}, make_source("a.png", b"x"))

    async def test_server_error_is_transient_but_single_attempt(self, make_source) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(502)

        transport = DirectTransport(http_client=_client(handler))
        with pytest.raises(TransferError) as exc_info:
            await transport.post_multipart(CDN_URL, {}, make_source("a.png", b"x"))
        assert exc_info.value.transient is True
        assert len(calls) == 1
