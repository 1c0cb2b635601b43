"""Upload one file (or register one link) and print status as it changes.

Usage:
    uv run python -m scripts.upload_media <path> <product_type> [module_name] [--downloadable]
    uv run python -m scripts.upload_media --link <url> <product_type>
Reads API_BASE_URL and API_TOKEN (and the rest of Settings) from the environment or .env.
Routing follows UploadOrchestrator.upload: videos go through the resumable
transport, images to the CDN, everything else to a signed URL.
"""

import asyncio
import sys

from media_upload.core.config import get_settings
from media_upload.core.lifespan import upload_runtime
from media_upload.domain.entities.upload_session import UploadSessionSnapshot
from media_upload.domain.enums import MediaKind
from media_upload.domain.exceptions import UploadException
from media_upload.domain.value_objects.core import SourceFile, TransferDescriptor
from media_upload.shared.telemetry.logging import setup_logging

USAGE = (
    "Usage: uv run python -m scripts.upload_media <path> <product_type> "
    "[module_name] [--downloadable]\n"
    "       uv run python -m scripts.upload_media --link <url> <product_type>"
)


def _print_statuses(snapshots: tuple[UploadSessionSnapshot, ...]) -> None:
    for s in snapshots:
        print(f"  {s.filename}: {s.status.value} {s.progress}%")


async def main() -> None:
    """Run one upload through the orchestrator."""
    args = [a for a in sys.argv[1:] if a != "--downloadable"]
    downloadable = "--downloadable" in sys.argv[1:]
    is_link = bool(args) and args[0] == "--link"
    if is_link:
        args = args[1:]
    if len(args) < 2:
        print(USAGE, file=sys.stderr)
        sys.exit(1)

    settings = get_settings()
    setup_logging(settings)

    source = None
    if is_link:
        descriptor = TransferDescriptor(
            media_kind=MediaKind.LINK, filename=args[0], product_type=args[1]
        )
    else:
        try:
            source = SourceFile.from_path(args[0])
        except FileNotFoundError:
            print(f"File not found: {args[0]}", file=sys.stderr)
            sys.exit(1)
        descriptor = TransferDescriptor(
            media_kind=source.media_kind,
            filename=source.filename,
            product_type=args[1],
            is_downloadable=downloadable,
        )
    module_name = args[2] if len(args) > 2 else ""

    async with upload_runtime(settings) as runtime:
        orchestrator = runtime.orchestrator
        orchestrator.subscribe(_print_statuses)
        try:
            result = await orchestrator.upload(source, descriptor, module_name)
        except UploadException as e:
            print(f"Upload failed [{e.error_code}]: {e.message}", file=sys.stderr)
            sys.exit(1)

    print(f"Done: {result.session.filename} ({result.kind.value})")
    if result.asset_id:
        print(f"Asset id: {result.asset_id}")
    if result.reference:
        print(f"Reference: {result.reference}")


if __name__ == "__main__":
    asyncio.run(main())
