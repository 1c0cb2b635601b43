"""Application DTOs (no HTTP or transport dependency)."""

from media_upload.application.dtos.upload import (
    CdnUploadResult,
    RegisteredAsset,
    ResumeEntry,
    SignedUploadGrant,
    TransferReceipt,
    UploadResult,
)

__all__ = [
    "CdnUploadResult",
    "RegisteredAsset",
    "ResumeEntry",
    "SignedUploadGrant",
    "TransferReceipt",
    "UploadResult",
]
