"""Builders and fakes shared by the unit tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

import httpx

from media_upload.domain.enums import MediaKind
from media_upload.domain.value_objects.core import (
    ResumableSessionCredentials,
    TransferDescriptor,
)
from media_upload.shared.utils.datetime import utc_now

TUS_ENDPOINT = "https://tus.test/files"


def make_descriptor(
    kind: MediaKind = MediaKind.VIDEO,
    filename: str = "lecture.mp4",
    product_type: str = "course",
    **kwargs,
) -> TransferDescriptor:
    return TransferDescriptor(
        media_kind=kind, filename=filename, product_type=product_type, **kwargs
    )


def make_credentials(
    expires_in: timedelta = timedelta(hours=1),
    endpoint: str = TUS_ENDPOINT,
) -> ResumableSessionCredentials:
    return ResumableSessionCredentials(
        remote_object_id="vid-1",
        container_id="42",
        transfer_endpoint=endpoint,
        authorization_signature="sig",
        expiration_time=int((utc_now() + expires_in).timestamp()),
    )


@dataclass
class FakeTusServer:
    """In-memory TUS 1.0.0 server for httpx.MockTransport.

    patch_failures: statuses (or exceptions) returned by the next PATCH
    requests, consumed in order before normal handling resumes.
    """

    uploads: dict[str, bytearray] = field(default_factory=dict)
    lengths: dict[str, int] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)
    patch_failures: list[int | Exception] = field(default_factory=list)
    create_status: int = 201

    def methods(self) -> list[str]:
        return [r.method for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if request.method == "POST":
            if self.create_status != 201:
                return httpx.Response(self.create_status)
            upload_id = f"u{len(self.uploads) + 1}"
            upload_url = f"{TUS_ENDPOINT}/{upload_id}"
            self.uploads[upload_url] = bytearray()
            self.lengths[upload_url] = int(request.headers["Upload-Length"])
            return httpx.Response(201, headers={"Location": f"/files/{upload_id}"})
        if url not in self.uploads:
            return httpx.Response(404)
        if request.method == "HEAD":
            return httpx.Response(
                200,
                headers={
                    "Upload-Offset": str(len(self.uploads[url])),
                    "Upload-Length": str(self.lengths[url]),
                },
            )
        if request.method == "PATCH":
            if self.patch_failures:
                failure = self.patch_failures.pop(0)
                if isinstance(failure, Exception):
                    raise failure
                return httpx.Response(failure)
            offset = int(request.headers["Upload-Offset"])
            if offset != len(self.uploads[url]):
                return httpx.Response(409)
            self.uploads[url].extend(request.content)
            return httpx.Response(
                204, headers={"Upload-Offset": str(len(self.uploads[url]))}
            )
        return httpx.Response(405)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
