"""Media backend: API client, asset registrars, CDN configuration."""

from media_upload.infrastructure.external.backend.cdn_config import (
    CachedCdnConfigProvider,
    StaticCdnConfigProvider,
)
from media_upload.infrastructure.external.backend.client import (
    MediaApiClient,
    build_backend_client,
)
from media_upload.infrastructure.external.backend.registrar import (
    AssetRegistrar,
    FileAssetRegistrar,
    ImageAssetRegistrar,
    LinkAssetRegistrar,
    VideoAssetRegistrar,
)

__all__ = [
    "AssetRegistrar",
    "CachedCdnConfigProvider",
    "FileAssetRegistrar",
    "ImageAssetRegistrar",
    "LinkAssetRegistrar",
    "MediaApiClient",
    "StaticCdnConfigProvider",
    "VideoAssetRegistrar",
    "build_backend_client",
]
