"""Source file fingerprint used to match interrupted resumable transfers."""

from __future__ import annotations

import hashlib

import aiofiles

from media_upload.domain.value_objects.core import SourceFile

FINGERPRINT_PREFIX = "tus::"
HEAD_BYTES = 64 * 1024  # 64KB


async def compute_fingerprint(source: SourceFile, head_bytes: int = HEAD_BYTES) -> str:
    """Return a stable fingerprint for source.

    SHA-256 over filename, size, modification time (ns) and the SHA-256 of
    the first head_bytes of content. A file that changed in place gets a
    new fingerprint and therefore never resumes a stale transfer.

    Args:
        source: File to fingerprint.
        head_bytes: Number of leading bytes to digest.

    Returns:
        'tus::' followed by a 64-char hex digest.
    """
    async with aiofiles.open(source.path, "rb") as f:
        head = await f.read(head_bytes)
    head_digest = hashlib.sha256(head).hexdigest()
    identity = "\x00".join(
        (source.filename, str(source.size), str(source.modified_ns), head_digest)
    )
    return FINGERPRINT_PREFIX + hashlib.sha256(identity.encode()).hexdigest()
