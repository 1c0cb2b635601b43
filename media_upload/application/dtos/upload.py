"""DTOs for upload use cases (no dependency on HTTP or transport types)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from media_upload.domain.entities.upload_session import UploadSessionSnapshot
from media_upload.domain.enums import MediaKind


@dataclass(frozen=True)
class SignedUploadGrant:
    """Result of generic-file negotiation: provisional file id and one-time PUT URL."""

    file_id: str
    signed_url: str

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> SignedUploadGrant:
        """Parse {response: {fileId, signedUrl}}. Raises ValueError when incomplete."""
        body = data.get("response") if isinstance(data.get("response"), dict) else data
        file_id = body.get("fileId")
        signed_url = body.get("signedUrl")
        if not file_id or not signed_url:
            raise ValueError("File negotiation response missing fileId or signedUrl")
        return cls(file_id=str(file_id), signed_url=str(signed_url))


@dataclass(frozen=True)
class CdnUploadResult:
    """CDN response for an image upload."""

    object_reference: str
    secure_url: str | None
    folder: str | None

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> CdnUploadResult:
        public_id = data.get("public_id")
        if not public_id:
            raise ValueError("CDN response missing public_id")
        return cls(
            object_reference=str(public_id),
            secure_url=data.get("secure_url") or data.get("url"),
            folder=data.get("folder"),
        )


@dataclass(frozen=True)
class ResumeEntry:
    """Stored state of an interrupted resumable transfer, keyed by fingerprint."""

    upload_url: str
    remote_object_id: str | None = None
    container_id: str | None = None
    size: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "upload_url": self.upload_url,
            "remote_object_id": self.remote_object_id,
            "container_id": self.container_id,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResumeEntry:
        return cls(
            upload_url=data["upload_url"],
            remote_object_id=data.get("remote_object_id"),
            container_id=data.get("container_id"),
            size=data.get("size"),
        )


@dataclass(frozen=True)
class TransferReceipt:
    """Outcome of a completed resumable transfer."""

    upload_url: str
    fingerprint: str
    bytes_transferred: int
    resumed_from_offset: int = 0
    remote_object_id: str | None = None
    container_id: str | None = None


@dataclass(frozen=True)
class RegisteredAsset:
    """Asset record created by a registrar.

    asset_id is the backend id when the response carries one; reference is
    the value callers display (e.g. the managed image URL).
    """

    kind: MediaKind
    asset_id: str | None = None
    reference: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UploadResult:
    """What an upload call resolves with and passes to its completion callback.

    refresh is True when the caller should re-query the backend asset list;
    reference carries a direct value (image URL or CDN public id) when the
    path returns one.
    """

    session: UploadSessionSnapshot
    kind: MediaKind
    refresh: bool = False
    asset_id: str | None = None
    reference: str | None = None
