"""Service interfaces (ports) for the upload application layer.

Protocols define contracts the orchestrator depends on (DIP). Concrete
implementations live in media_upload.infrastructure.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from media_upload.application.dtos.upload import (
        CdnUploadResult,
        RegisteredAsset,
        ResumeEntry,
        SignedUploadGrant,
        TransferReceipt,
    )
    from media_upload.domain.entities.upload_session import UploadSessionSnapshot
    from media_upload.domain.enums import MediaKind
    from media_upload.domain.value_objects.core import (
        CdnConfig,
        RemoteReference,
        ResumableSessionCredentials,
        SourceFile,
        TransferDescriptor,
    )
    from media_upload.shared.utils.cancellation import CancellationToken

# (bytes_done, bytes_total)
ProgressCallback = Callable[[int, int], None]


# Backoff policy interface
class IBackoffPolicy(Protocol):
    """Protocol for retry delay schedules used by the resumable transport."""

    def next_delay(self, attempt: int) -> float | None:
        """Seconds to wait before retry number attempt (1-based); None when retries are exhausted."""


# Status observer interface
class IStatusObserver(Protocol):
    """Protocol for broadcaster subscribers. Called synchronously on every mutation."""

    def __call__(self, snapshots: Sequence[UploadSessionSnapshot]) -> None:
        """Receive an immutable snapshot of every tracked session."""


# Resume store interface
class IResumeStore(Protocol):
    """Protocol for persisting interrupted resumable transfers by source fingerprint."""

    async def get(self, fingerprint: str) -> ResumeEntry | None:
        """Return the stored entry or None."""

    async def set(self, fingerprint: str, entry: ResumeEntry) -> None:
        """Store or replace the entry."""

    async def delete(self, fingerprint: str) -> None:
        """Remove the entry if present."""


# Media backend API interface
class IMediaApiClient(Protocol):
    """Protocol for the backend media API (negotiation, commit, listing, deletion)."""

    async def negotiate_file_upload(
        self, descriptor: TransferDescriptor
    ) -> SignedUploadGrant:
        """Return provisional file id and signed PUT URL."""

    async def finalize_file(self, file_id: str) -> dict[str, Any]:
        """Commit a generic file after its PUT succeeded."""

    async def negotiate_video_upload(self, title: str) -> ResumableSessionCredentials:
        """Return resumable transfer credentials for a video."""

    async def commit_video(
        self,
        descriptor: TransferDescriptor,
        remote_object_id: str,
        container_id: str,
    ) -> dict[str, Any]:
        """Create the video asset record."""

    async def commit_link(self, descriptor: TransferDescriptor) -> dict[str, Any]:
        """Create a link asset record."""

    async def commit_image(
        self,
        descriptor: TransferDescriptor,
        object_reference: str,
        folder: str | None,
    ) -> dict[str, Any]:
        """Register a CDN-hosted image as a managed asset."""

    async def list_assets(self) -> Any:
        """Return the backend's current asset list."""

    async def delete_asset(self, asset_id: str) -> None:
        """Delete an asset by id."""

    async def get_tenant_settings(self) -> dict[str, Any]:
        """Return tenant settings (CDN cloud name, preset, org and tenant ids)."""


# Asset registrar interface
class IAssetRegistrar(Protocol):
    """Protocol for the commit step that turns transferred bytes into an asset."""

    async def register(
        self,
        kind: MediaKind,
        remote_reference: RemoteReference,
        descriptor: TransferDescriptor,
    ) -> RegisteredAsset:
        """Create the asset record; raise RegistrationError on failure."""


# CDN configuration provider interface
class ICdnConfigProvider(Protocol):
    """Protocol for resolving (and caching) tenant CDN configuration."""

    async def get_config(self) -> CdnConfig:
        """Return CDN config; may be incomplete (caller checks is_complete)."""


# Resumable transport interface
class IResumableTransport(Protocol):
    """Protocol for chunked, resumable transfers."""

    async def transfer(
        self,
        source: SourceFile,
        credentials: ResumableSessionCredentials,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        on_upload_url: Callable[[str, str], None] | None = None,
    ) -> TransferReceipt:
        """Transfer source, resuming a previous attempt when one is stored."""


# Direct transport interface
class IDirectTransport(Protocol):
    """Protocol for single-attempt transfers."""

    async def put_signed_url(
        self,
        url: str,
        source: SourceFile,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """PUT source to a pre-signed URL."""

    async def post_multipart(
        self,
        url: str,
        fields: dict[str, str],
        source: SourceFile,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> CdnUploadResult:
        """POST source as multipart form data; return the parsed CDN response."""
