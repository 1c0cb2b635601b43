"""Core constants: backend paths, protocol literals, and MIME tables.

Single source of truth for endpoint paths and header names used by the
backend client and the transports.
"""

# Backend endpoints (relative to settings.api_base_url)
PATH_FILE_INIT = "/edmedia/file/init"
PATH_FILE_FINALIZE = "/edmedia/file/{file_id}"
PATH_VIDEO_INIT = "/edmedia/video/init"
PATH_VIDEO_COMMIT = "/edmedia/video"
PATH_LINK_COMMIT = "/edmedia/link"
PATH_IMAGE_COMMIT = "/edmedia/pmedia/image"
PATH_ASSET_LIST = "/edmedia/pmedia"
PATH_ASSET_DELETE = "/edmedia/asset/{asset_id}"
PATH_TENANT_SETTINGS = "/snode/tenant"

# TUS 1.0.0
TUS_VERSION = "1.0.0"
TUS_CONTENT_TYPE = "application/offset+octet-stream"
HEADER_TUS_RESUMABLE = "Tus-Resumable"
HEADER_UPLOAD_OFFSET = "Upload-Offset"
HEADER_UPLOAD_LENGTH = "Upload-Length"
HEADER_UPLOAD_METADATA = "Upload-Metadata"

# Sentinel progress for failed sessions
PROGRESS_FAILED = -1
PROGRESS_COMPLETE = 100

# MIME types per media kind (anything else is uploaded as a generic file)
VIDEO_MIME_TYPES = frozenset(
    {
        "video/mp4",
        "video/x-matroska",
        "video/3gpp",
        "video/x-flv",
        "video/MP2T",
        "video/quicktime",
        "video/x-msvideo",
        "video/x-ms-wmv",
        "application/x-mpegURL",
    }
)
AUDIO_MIME_TYPES = frozenset(
    {
        "audio/x-m4a",
        "audio/flac",
        "audio/mpeg",
        "audio/wav",
        "audio/x-ms-wma",
        "audio/aac",
        "audio/vnd.dlna.adts",
    }
)
IMAGE_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/tiff",
        "image/vnd.adobe.photoshop",
        "image/x-raw",
        "image/bmp",
        "image/svg+xml",
    }
)
PDF_MIME_TYPES = frozenset({"application/pdf"})
