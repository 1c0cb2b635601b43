"""Async client for the media backend API.

All HTTP calls use httpx.AsyncClient so they do not block the event
loop. Non-2xx responses and network errors become BackendRequestError;
negotiation calls raise NegotiationError so the orchestrator can tell
"no transfer attempted" apart from later failures.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from media_upload.application.dtos.upload import SignedUploadGrant
from media_upload.core.config import Settings, get_settings
from media_upload.core.constants import (
    PATH_ASSET_DELETE,
    PATH_ASSET_LIST,
    PATH_FILE_FINALIZE,
    PATH_FILE_INIT,
    PATH_IMAGE_COMMIT,
    PATH_LINK_COMMIT,
    PATH_TENANT_SETTINGS,
    PATH_VIDEO_COMMIT,
    PATH_VIDEO_INIT,
)
from media_upload.domain.value_objects.core import (
    ResumableSessionCredentials,
    TransferDescriptor,
)
from media_upload.infrastructure.exceptions import BackendRequestError, NegotiationError

logger = logging.getLogger(__name__)


def build_backend_client(settings: Settings) -> httpx.AsyncClient:
    """Create an httpx client with base URL and bearer auth from settings."""
    headers = {"Content-Type": "application/json"}
    token = settings.api_token_value
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(
        base_url=settings.api_base_url,
        headers=headers,
        timeout=settings.request_timeout_seconds,
    )


class MediaApiClient:
    """Backend media API (IMediaApiClient)."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize client.

        Args:
            http_client: Client whose base_url points at the backend and which
                carries the bearer credential; built from settings when omitted.
            settings: Used only when http_client is omitted.
        """
        self._owns_client = http_client is None
        self._http = http_client or build_backend_client(settings or get_settings())

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Perform one backend request and return the decoded JSON body ({} when empty)."""
        try:
            resp = await self._http.request(method, path, json=body, params=params)
        except httpx.TransportError as e:
            logger.warning("Backend %s failed: %s", operation, e)
            raise BackendRequestError(operation, f"{type(e).__name__}: {e}") from e
        if not resp.is_success:
            logger.warning(
                "Backend %s returned HTTP %s", operation, resp.status_code
            )
            raise BackendRequestError(
                operation, resp.text[:500], status_code=resp.status_code
            )
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise BackendRequestError(operation, "Response is not valid JSON") from e

    async def negotiate_file_upload(
        self, descriptor: TransferDescriptor
    ) -> SignedUploadGrant:
        """POST file/init; returns provisional file id and signed PUT URL."""
        try:
            data = await self._request(
                "negotiate_file", "POST", PATH_FILE_INIT, body=descriptor.to_payload()
            )
            return SignedUploadGrant.from_response(data)
        except BackendRequestError as e:
            raise NegotiationError("file", e.details.get("reason", e.message)) from e
        except (ValueError, AttributeError) as e:
            raise NegotiationError("file", str(e)) from e

    async def finalize_file(self, file_id: str) -> dict[str, Any]:
        """POST file/{id}; commits the generic file asset."""
        return await self._request(
            "finalize_file", "POST", PATH_FILE_FINALIZE.format(file_id=file_id), body={}
        )

    async def negotiate_video_upload(self, title: str) -> ResumableSessionCredentials:
        """GET video/init?title=...; returns resumable transfer credentials."""
        try:
            data = await self._request(
                "negotiate_video", "GET", PATH_VIDEO_INIT, params={"title": title}
            )
            return ResumableSessionCredentials.from_response(data)
        except BackendRequestError as e:
            raise NegotiationError("video", e.details.get("reason", e.message)) from e
        except ValueError as e:
            raise NegotiationError("video", str(e)) from e

    async def commit_video(
        self,
        descriptor: TransferDescriptor,
        remote_object_id: str,
        container_id: str,
    ) -> dict[str, Any]:
        """POST video; creates the video asset for a finished transfer."""
        body = {
            **descriptor.to_payload(),
            "videoId": remote_object_id,
            "libraryId": int(container_id) if container_id.isdigit() else container_id,
        }
        return await self._request("commit_video", "POST", PATH_VIDEO_COMMIT, body=body)

    async def commit_link(self, descriptor: TransferDescriptor) -> dict[str, Any]:
        """POST link; creates a link asset (the link is the descriptor's filename)."""
        return await self._request(
            "commit_link", "POST", PATH_LINK_COMMIT, body=descriptor.to_payload()
        )

    async def commit_image(
        self,
        descriptor: TransferDescriptor,
        object_reference: str,
        folder: str | None,
    ) -> dict[str, Any]:
        """POST pmedia/image; registers a CDN-hosted image as a managed asset."""
        body = {
            "fileName": descriptor.filename,
            "folderName": folder,
            "productType": descriptor.product_type,
            "imgUrl": object_reference,
            "isPublished": True,
        }
        return await self._request("commit_image", "POST", PATH_IMAGE_COMMIT, body=body)

    async def list_assets(self) -> Any:
        """GET pmedia; the authoritative asset list (never cached here)."""
        return await self._request("list_assets", "GET", PATH_ASSET_LIST)

    async def delete_asset(self, asset_id: str) -> None:
        """DELETE asset/{id}."""
        await self._request(
            "delete_asset", "DELETE", PATH_ASSET_DELETE.format(asset_id=asset_id)
        )

    async def get_tenant_settings(self) -> dict[str, Any]:
        """GET tenant settings (CDN cloud name, preset, org and tenant ids)."""
        data = await self._request("tenant_settings", "GET", PATH_TENANT_SETTINGS)
        return data if isinstance(data, dict) else {}
