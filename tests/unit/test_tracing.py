"""traced(): span attributes for upload inputs, outcomes and errors."""

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from media_upload.application.dtos.upload import UploadResult
from media_upload.domain.entities.upload_session import UploadSession
from media_upload.domain.enums import MediaKind
from media_upload.infrastructure.exceptions import TransferError
from media_upload.shared.telemetry.tracing import traced
from tests.factories import make_descriptor


@pytest.fixture
def exporter(monkeypatch) -> InMemorySpanExporter:
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(
        trace, "get_tracer", lambda name, *args, **kwargs: provider.get_tracer(name)
    )
    return exporter


async def test_records_inputs_and_session_outcome(exporter, make_source) -> None:
    session = UploadSession(session_id="s1", filename="cat.png", kind=MediaKind.IMAGE)
    session.complete()

    @traced("test.upload_image")
    async def upload_image(source, descriptor, module_name):
        return UploadResult(session=session.snapshot(), kind=MediaKind.IMAGE, asset_id="a1")

    await upload_image(
        make_source("cat.png", b"png"),
        make_descriptor(MediaKind.IMAGE, filename="cat.png", product_type="tasset"),
        module_name="tasset",
    )

    (span,) = exporter.get_finished_spans()
    assert span.name == "test.upload_image"
    assert span.status.status_code is StatusCode.OK
    attrs = dict(span.attributes)
    assert attrs["upload.kind"] == "image"
    assert attrs["upload.product_type"] == "tasset"
    assert attrs["upload.module_name"] == "tasset"
    assert attrs["upload.content_type"] == "image/png"
    assert attrs["upload.size"] == 3
    assert attrs["upload.session_id"] == "s1"
    assert attrs["upload.status"] == "completed"
    assert attrs["upload.asset_id"] == "a1"
    assert not any("path" in key or "url" in key for key in attrs)


async def test_records_upload_error_code(exporter) -> None:
    @traced()
    async def transfer(url):
        raise TransferError("gave up", transient=True)

    with pytest.raises(TransferError):
        await transfer("https://tus.test/files/u1")

    (span,) = exporter.get_finished_spans()
    assert span.status.status_code is StatusCode.ERROR
    assert span.attributes["upload.error_code"] == "TRANSFER_ERROR"
    assert span.attributes["upload.transient"] is True
    assert "https://tus.test/files/u1" not in str(dict(span.attributes))


def test_rejects_sync_functions() -> None:
    with pytest.raises(TypeError):

        @traced("test.sync")
        def not_async():
            return None
