"""Domain value objects for media uploads.

Value objects are immutable types that represent upload concepts with
self-validation. They have no identity, only value.
"""

import mimetypes
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from media_upload.domain.enums import MediaKind
from media_upload.shared.utils.datetime import from_timestamp_utc, utc_now


@dataclass(frozen=True)
class TransferDescriptor:
    """Caller-supplied description of what is being uploaded and where it belongs.

    Immutable per session. Used as the request body of negotiation and
    registration calls (see to_payload) and as metadata on the session.
    """

    media_kind: MediaKind
    filename: str
    product_type: str
    product_id: str | None = None
    product_name: str | None = None
    question_id: str | None = None
    chapter_id: str | None = None
    section_id: str | None = None
    is_downloadable: bool = False
    is_homework: bool = False
    sequence: int | None = None

    def __post_init__(self) -> None:
        if not self.filename:
            raise ValueError("Descriptor filename must be a non-empty string")
        if not self.product_type:
            raise ValueError("Descriptor product_type must be a non-empty string")

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the backend's camelCase body. Unset identifiers are omitted."""
        payload: dict[str, Any] = {
            "mediaType": self.media_kind.value,
            "fileName": self.filename,
            "productType": self.product_type,
            "isDownloadable": self.is_downloadable,
            "isHomework": self.is_homework,
        }
        optional = {
            "productId": self.product_id,
            "productName": self.product_name,
            "questionId": self.question_id,
            "chapterId": self.chapter_id,
            "sectionId": self.section_id,
            "sequence": self.sequence,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        return payload


@dataclass(frozen=True)
class ResumableSessionCredentials:
    """Short-lived credentials for one resumable video transfer.

    Issued by the backend's video negotiation call and consumed by the
    resumable transport. Not persisted: once expired, the transfer fails
    and a new session must negotiate fresh credentials.
    """

    remote_object_id: str
    container_id: str
    transfer_endpoint: str
    authorization_signature: str
    expiration_time: int  # Unix seconds

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "ResumableSessionCredentials":
        """Build from the negotiation response body.

        Raises:
            ValueError: If a required field is missing.
        """
        try:
            return cls(
                remote_object_id=str(data["videoId"]),
                container_id=str(data["libraryId"]),
                transfer_endpoint=str(data["tusEndPoint"]),
                authorization_signature=str(data["sha256"]),
                expiration_time=int(data["expirationTime"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid video negotiation response: {e}") from e

    @property
    def expires_at(self) -> datetime:
        return from_timestamp_utc(self.expiration_time)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Return True when the expiration time has passed."""
        return (now or utc_now()) >= self.expires_at

    def tus_headers(self) -> dict[str, str]:
        """Authorization headers the ingestion endpoint expects on every request."""
        return {
            "AuthorizationSignature": self.authorization_signature,
            "AuthorizationExpire": str(self.expiration_time),
            "VideoId": self.remote_object_id,
            "LibraryId": self.container_id,
        }


@dataclass(frozen=True)
class SourceFile:
    """A local file to transfer: path plus the attributes transports need."""

    path: Path
    filename: str
    size: int
    content_type: str
    modified_ns: int = 0

    @classmethod
    def from_path(
        cls,
        path: str | os.PathLike[str],
        content_type: str | None = None,
        filename: str | None = None,
    ) -> "SourceFile":
        """Stat the file and guess its MIME type when not given.

        Raises:
            FileNotFoundError: If path does not exist.
        """
        p = Path(path)
        stat = p.stat()
        guessed, _ = mimetypes.guess_type(p.name)
        return cls(
            path=p,
            filename=filename or p.name,
            size=stat.st_size,
            content_type=content_type or guessed or "application/octet-stream",
            modified_ns=stat.st_mtime_ns,
        )

    @property
    def media_kind(self) -> MediaKind:
        return MediaKind.from_content_type(self.content_type)


@dataclass(frozen=True)
class CdnConfig:
    """Tenant-scoped CDN settings for unsigned image uploads."""

    cloud_name: str = ""
    upload_preset: str = ""
    org_id: str = ""
    tenant_id: str = ""

    @classmethod
    def from_tenant_settings(cls, data: dict[str, Any]) -> "CdnConfig":
        return cls(
            cloud_name=data.get("cloudinaryCloudName") or "",
            upload_preset=data.get("cloudinaryPreset") or "",
            org_id=data.get("orgId") or "",
            tenant_id=data.get("tenantId") or "",
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.cloud_name and self.upload_preset)

    @property
    def folder(self) -> str:
        return f"{self.org_id}-{self.tenant_id}"


@dataclass(frozen=True)
class RemoteReference:
    """What the byte transfer left behind, handed to the registrar.

    Exactly the fields the matching registrar needs are set: ids for video,
    file_id for generic files, object_reference and folder for CDN images,
    link for links.
    """

    remote_object_id: str | None = None
    container_id: str | None = None
    file_id: str | None = None
    object_reference: str | None = None
    folder: str | None = None
    link: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
