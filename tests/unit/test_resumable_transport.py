"""ResumableTransport against an in-memory TUS server (httpx.MockTransport)."""

import base64
from datetime import timedelta

import httpx
import pytest

from media_upload.application.dtos.upload import ResumeEntry
from media_upload.domain.exceptions import UploadCancelledException
from media_upload.infrastructure.cache.resume_store import InMemoryResumeStore
from media_upload.infrastructure.exceptions import CredentialsExpiredError, TransferError
from media_upload.infrastructure.external.transfer.backoff import FixedScheduleBackoff
from media_upload.infrastructure.external.transfer.fingerprint import compute_fingerprint
from media_upload.infrastructure.external.transfer.resumable import ResumableTransport
from media_upload.shared.utils.cancellation import CancellationToken
from media_upload.shared.utils.datetime import utc_now
from tests.factories import TUS_ENDPOINT, make_credentials

CONTENT = b"0123456789"


@pytest.fixture
def store() -> InMemoryResumeStore:
    return InMemoryResumeStore()


def _transport(client, store, sleep, **kwargs) -> ResumableTransport:
    return ResumableTransport(
        http_client=client,
        resume_store=store,
        backoff=FixedScheduleBackoff((0, 0, 0)),
        chunk_size=4,
        sleep=sleep,
        **kwargs,
    )


def _flaky_client(server, fail_patch_number: int, failure):
    """Client whose Nth PATCH fails with failure (an exception or a status code)."""
    patches = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PATCH":
            patches["count"] += 1
            if patches["count"] == fail_patch_number:
                server.requests.append(request)
                if isinstance(failure, int):
                    return httpx.Response(failure)
                raise failure
        return server.handler(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_happy_path_sends_chunks_and_reports_acked_progress(
    make_source, tus_server, store, no_sleep
) -> None:
    source = make_source(content=CONTENT)
    progress: list[tuple[int, int]] = []
    urls: list[tuple[str, str]] = []
    transport = _transport(tus_server.client(), store, no_sleep)

    receipt = await transport.transfer(
        source,
        make_credentials(),
        on_progress=lambda done, total: progress.append((done, total)),
        on_upload_url=lambda url, fp: urls.append((url, fp)),
    )

    assert tus_server.methods() == ["POST", "PATCH", "PATCH", "PATCH"]
    assert progress == [(4, 10), (8, 10), (10, 10)]
    assert tus_server.uploads[f"{TUS_ENDPOINT}/u1"] == CONTENT
    assert receipt.upload_url == f"{TUS_ENDPOINT}/u1"
    assert receipt.bytes_transferred == 10
    assert receipt.resumed_from_offset == 0
    assert receipt.remote_object_id == "vid-1"
    assert urls == [(receipt.upload_url, receipt.fingerprint)]
    assert len(store) == 0
    assert no_sleep.delays == []


async def test_creation_request_carries_tus_and_credential_headers(
    make_source, tus_server, store, no_sleep
) -> None:
    source = make_source(content=CONTENT)
    await _transport(tus_server.client(), store, no_sleep).transfer(source, make_credentials())

    create = tus_server.requests[0]
    assert create.headers["Tus-Resumable"] == "1.0.0"
    assert create.headers["Upload-Length"] == "10"
    assert create.headers["AuthorizationSignature"] == "sig"
    assert create.headers["VideoId"] == "vid-1"
    assert create.headers["LibraryId"] == "42"
    metadata = dict(pair.split(" ") for pair in create.headers["Upload-Metadata"].split(","))
    assert base64.b64decode(metadata["filetype"]) == b"video/mp4"
    assert base64.b64decode(metadata["title"]) == b"lecture.mp4"

    patch = tus_server.requests[1]
    assert patch.headers["Content-Type"] == "application/offset+octet-stream"
    assert patch.headers["Upload-Offset"] == "0"


async def test_transient_error_retries_after_offset_resync(
    make_source, tus_server, store, no_sleep
) -> None:
    source = make_source(content=CONTENT)
    client = _flaky_client(tus_server, 2, httpx.ConnectError("connection reset"))
    progress: list[int] = []

    receipt = await _transport(client, store, no_sleep).transfer(
        source, make_credentials(), on_progress=lambda done, total: progress.append(done)
    )

    assert tus_server.methods() == ["POST", "PATCH", "PATCH", "HEAD", "PATCH", "PATCH"]
    assert no_sleep.delays == [0]
    assert progress == sorted(progress)
    assert progress[-1] == 10
    assert tus_server.uploads[receipt.upload_url] == CONTENT


async def test_retry_budget_exhausted_raises_transient_error(
    make_source, tus_server, store, no_sleep
) -> None:
    source = make_source(content=CONTENT)
    tus_server.patch_failures = [503, 503, 503, 503]

    with pytest.raises(TransferError) as exc_info:
        await _transport(tus_server.client(), store, no_sleep).transfer(
            source, make_credentials()
        )

    assert exc_info.value.transient is True
    assert exc_info.value.status_code == 503
    assert no_sleep.delays == [0, 0, 0]
    # The upload stays resumable
    assert len(store) == 1


async def test_stalled_offset_is_retried_within_budget(
    make_source, tus_server, store, no_sleep
) -> None:
    source = make_source(content=CONTENT)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PATCH":
            tus_server.requests.append(request)
            return httpx.Response(
                204, headers={"Upload-Offset": request.headers["Upload-Offset"]}
            )
        return tus_server.handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    with pytest.raises(TransferError) as exc_info:
        await _transport(client, store, no_sleep).transfer(source, make_credentials())

    assert exc_info.value.transient is True
    assert no_sleep.delays == [0, 0, 0]
    assert tus_server.methods().count("PATCH") == 4


async def test_non_transient_error_fails_immediately(
    make_source, tus_server, store, no_sleep
) -> None:
    source = make_source(content=CONTENT)
    tus_server.patch_failures = [400]

    with pytest.raises(TransferError) as exc_info:
        await _transport(tus_server.client(), store, no_sleep).transfer(
            source, make_credentials()
        )

    assert exc_info.value.transient is False
    assert exc_info.value.status_code == 400
    assert no_sleep.delays == []
    assert tus_server.methods() == ["POST", "PATCH"]


async def test_interrupted_transfer_resumes_from_server_offset(
    make_source, tus_server, store, no_sleep
) -> None:
    source = make_source(content=CONTENT)
    failing = _flaky_client(tus_server, 2, 400)
    with pytest.raises(TransferError):
        await _transport(failing, store, no_sleep).transfer(source, make_credentials())
    assert len(store) == 1

    progress: list[int] = []
    tus_server.requests.clear()
    receipt = await _transport(tus_server.client(), store, no_sleep).transfer(
        source,
        make_credentials(),
        on_progress=lambda done, total: progress.append(done * 100 // total),
    )

    assert tus_server.methods() == ["HEAD", "PATCH", "PATCH"]
    assert progress[0] >= 40
    assert progress == sorted(progress)
    assert receipt.resumed_from_offset == 4
    assert receipt.bytes_transferred == 6
    assert tus_server.uploads[receipt.upload_url] == CONTENT
    assert len(store) == 0


async def test_resume_uses_stored_remote_ids(make_source, tus_server, store, no_sleep) -> None:
    source = make_source(content=CONTENT)
    upload_url = f"{TUS_ENDPOINT}/u9"
    tus_server.uploads[upload_url] = bytearray(CONTENT[:8])
    tus_server.lengths[upload_url] = 10
    await store.set(
        await compute_fingerprint(source),
        ResumeEntry(upload_url=upload_url, remote_object_id="vid-old", container_id="7", size=10),
    )

    receipt = await _transport(tus_server.client(), store, no_sleep).transfer(
        source, make_credentials()
    )

    assert receipt.remote_object_id == "vid-old"
    assert receipt.container_id == "7"
    assert receipt.resumed_from_offset == 8


async def test_stale_resume_entry_starts_fresh(make_source, tus_server, store, no_sleep) -> None:
    source = make_source(content=CONTENT)
    await store.set(
        await compute_fingerprint(source),
        ResumeEntry(upload_url=f"{TUS_ENDPOINT}/gone"),
    )

    receipt = await _transport(tus_server.client(), store, no_sleep).transfer(
        source, make_credentials()
    )

    assert tus_server.methods()[:2] == ["HEAD", "POST"]
    assert receipt.resumed_from_offset == 0
    assert tus_server.uploads[receipt.upload_url] == CONTENT


async def test_expired_credentials_send_nothing(make_source, tus_server, store, no_sleep) -> None:
    source = make_source(content=CONTENT)

    with pytest.raises(CredentialsExpiredError):
        await _transport(tus_server.client(), store, no_sleep).transfer(
            source, make_credentials(expires_in=timedelta(seconds=-1))
        )

    assert tus_server.requests == []


async def test_credentials_expiring_mid_transfer_are_not_retried(
    make_source, tus_server, store, no_sleep
) -> None:
    source = make_source(content=CONTENT)
    credentials = make_credentials(expires_in=timedelta(minutes=5))
    now = {"value": utc_now()}

    def expire(done: int, total: int) -> None:
        now["value"] = credentials.expires_at + timedelta(seconds=1)

    transport = _transport(
        tus_server.client(), store, no_sleep, clock=lambda: now["value"]
    )
    with pytest.raises(CredentialsExpiredError) as exc_info:
        await transport.transfer(source, credentials, on_progress=expire)

    assert exc_info.value.transient is False
    assert tus_server.methods() == ["POST", "PATCH"]
    assert no_sleep.delays == []


async def test_cancellation_stops_before_next_request(
    make_source, tus_server, store, no_sleep
) -> None:
    source = make_source(content=CONTENT)
    token = CancellationToken("s1")

    with pytest.raises(UploadCancelledException):
        await _transport(tus_server.client(), store, no_sleep).transfer(
            source,
            make_credentials(),
            on_progress=lambda done, total: token.cancel(),
            cancel_token=token,
        )

    assert tus_server.methods() == ["POST", "PATCH"]


async def test_missing_location_header_is_an_error(make_source, store, no_sleep) -> None:
    source = make_source(content=CONTENT)
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(201)))

    with pytest.raises(TransferError, match="Location"):
        await _transport(client, store, no_sleep).transfer(source, make_credentials())


def test_chunk_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ResumableTransport(chunk_size=0)
