"""Asset registration: the commit step after a successful byte transfer.

One registrar per media kind; AssetRegistrar dispatches by kind. Every
failure surfaces as RegistrationError (partial failure when bytes were
already transferred). Nothing here retries: the backend is expected to
make commits idempotent, and re-issuing one is the caller's decision.
"""

from __future__ import annotations

import logging
from typing import Any

from media_upload.application.dtos.upload import RegisteredAsset
from media_upload.application.interfaces.services import IMediaApiClient
from media_upload.domain.enums import MediaKind
from media_upload.domain.value_objects.core import RemoteReference, TransferDescriptor
from media_upload.infrastructure.exceptions import (
    BackendRequestError,
    RegistrationError,
)
from media_upload.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)


def _asset_id(data: Any) -> str | None:
    """Pick the backend id out of a commit response, wherever it is nested."""
    if not isinstance(data, dict):
        return None
    for candidate in (data, data.get("data"), data.get("response")):
        if isinstance(candidate, dict):
            for key in ("_id", "id", "assetId"):
                if candidate.get(key):
                    return str(candidate[key])
    return None


class _KindRegistrar:
    """Shared plumbing: call the backend, translate failures to RegistrationError."""

    kind: MediaKind

    def __init__(self, api: IMediaApiClient) -> None:
        self.api = api

    async def _commit(
        self, remote_reference: RemoteReference, descriptor: TransferDescriptor
    ) -> Any:
        raise NotImplementedError

    def _to_asset(self, data: Any, remote_reference: RemoteReference) -> RegisteredAsset:
        return RegisteredAsset(
            kind=self.kind,
            asset_id=_asset_id(data),
            raw=data if isinstance(data, dict) else {},
        )

    async def register(
        self, remote_reference: RemoteReference, descriptor: TransferDescriptor
    ) -> RegisteredAsset:
        try:
            data = await self._commit(remote_reference, descriptor)
        except BackendRequestError as e:
            logger.error(
                "Registration of %s asset %s failed: %s",
                self.kind.value,
                descriptor.filename,
                e.details.get("reason", e.message),
            )
            raise RegistrationError(
                self.kind, remote_reference, descriptor, e.message
            ) from e
        asset = self._to_asset(data, remote_reference)
        logger.info(
            "Registered %s asset %s (id=%s)",
            self.kind.value,
            descriptor.filename,
            asset.asset_id,
        )
        return asset


class VideoAssetRegistrar(_KindRegistrar):
    kind = MediaKind.VIDEO

    async def _commit(
        self, remote_reference: RemoteReference, descriptor: TransferDescriptor
    ) -> Any:
        if not remote_reference.remote_object_id or not remote_reference.container_id:
            raise BackendRequestError("commit_video", "Missing video or library id")
        return await self.api.commit_video(
            descriptor,
            remote_reference.remote_object_id,
            remote_reference.container_id,
        )


class FileAssetRegistrar(_KindRegistrar):
    """Finalizes a generic file using the provisional id from negotiation."""

    kind = MediaKind.OTHER

    async def _commit(
        self, remote_reference: RemoteReference, descriptor: TransferDescriptor
    ) -> Any:
        if not remote_reference.file_id:
            raise BackendRequestError("finalize_file", "Missing provisional file id")
        return await self.api.finalize_file(remote_reference.file_id)

    def _to_asset(self, data: Any, remote_reference: RemoteReference) -> RegisteredAsset:
        return RegisteredAsset(
            kind=self.kind,
            asset_id=_asset_id(data) or remote_reference.file_id,
            raw=data if isinstance(data, dict) else {},
        )


class LinkAssetRegistrar(_KindRegistrar):
    kind = MediaKind.LINK

    async def _commit(
        self, remote_reference: RemoteReference, descriptor: TransferDescriptor
    ) -> Any:
        return await self.api.commit_link(descriptor)


class ImageAssetRegistrar(_KindRegistrar):
    """Registers a CDN-hosted image; the response must carry the managed imgUrl."""

    kind = MediaKind.IMAGE

    async def _commit(
        self, remote_reference: RemoteReference, descriptor: TransferDescriptor
    ) -> Any:
        if not remote_reference.object_reference:
            raise BackendRequestError("commit_image", "Missing CDN object reference")
        data = await self.api.commit_image(
            descriptor, remote_reference.object_reference, remote_reference.folder
        )
        inner = data.get("data") if isinstance(data, dict) else None
        if not isinstance(inner, dict) or not inner.get("imgUrl"):
            raise BackendRequestError("commit_image", "Response has no data.imgUrl")
        return data

    def _to_asset(self, data: Any, remote_reference: RemoteReference) -> RegisteredAsset:
        return RegisteredAsset(
            kind=self.kind,
            asset_id=_asset_id(data),
            reference=str(data["data"]["imgUrl"]),
            raw=data,
        )


class AssetRegistrar:
    """Dispatches register() to the registrar for the media kind (IAssetRegistrar).

    Audio, PDF and other generic kinds go through file finalization.
    """

    def __init__(self, api: IMediaApiClient) -> None:
        file_registrar = FileAssetRegistrar(api)
        self._registrars: dict[MediaKind, _KindRegistrar] = {
            MediaKind.VIDEO: VideoAssetRegistrar(api),
            MediaKind.LINK: LinkAssetRegistrar(api),
            MediaKind.IMAGE: ImageAssetRegistrar(api),
            MediaKind.AUDIO: file_registrar,
            MediaKind.PDF: file_registrar,
            MediaKind.OTHER: file_registrar,
        }

    @traced("asset_registrar.register")
    async def register(
        self,
        kind: MediaKind,
        remote_reference: RemoteReference,
        descriptor: TransferDescriptor,
    ) -> RegisteredAsset:
        """Create the asset record for kind.

        Raises:
            RegistrationError: The commit call failed or returned an unusable body.
            ValueError: No registrar handles kind.
        """
        registrar = self._registrars.get(kind)
        if registrar is None:
            raise ValueError(f"No registrar for media kind: {kind.value}")
        return await registrar.register(remote_reference, descriptor)
