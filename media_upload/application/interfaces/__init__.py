"""Application interfaces (ports): service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from media_upload.infrastructure.
"""

from media_upload.application.interfaces.services import (
    IAssetRegistrar,
    IBackoffPolicy,
    ICdnConfigProvider,
    IDirectTransport,
    IMediaApiClient,
    IResumableTransport,
    IResumeStore,
    IStatusObserver,
    ProgressCallback,
)

__all__ = [
    "IAssetRegistrar",
    "IBackoffPolicy",
    "ICdnConfigProvider",
    "IDirectTransport",
    "IMediaApiClient",
    "IResumableTransport",
    "IResumeStore",
    "IStatusObserver",
    "ProgressCallback",
]
