"""Source fingerprint used to match interrupted resumable transfers."""

import os

from media_upload.domain.value_objects.core import SourceFile
from media_upload.infrastructure.external.transfer.fingerprint import compute_fingerprint


async def test_fingerprint_is_stable(make_source) -> None:
    source = make_source(content=b"x" * 1000)
    first = await compute_fingerprint(source)
    assert first.startswith("tus::")
    assert len(first) == len("tus::") + 64
    assert await compute_fingerprint(source) == first


async def test_content_change_changes_fingerprint(make_source) -> None:
    source = make_source(content=b"aaaa")
    before = await compute_fingerprint(source)
    source.path.write_bytes(b"bbbb")
    os.utime(source.path, ns=(source.modified_ns, source.modified_ns))
    changed = SourceFile.from_path(source.path)
    assert changed.size == source.size
    assert await compute_fingerprint(changed) != before


async def test_filename_is_part_of_identity(make_source) -> None:
    a = make_source("a.mp4", b"same")
    b = SourceFile.from_path(a.path, filename="b.mp4")
    assert await compute_fingerprint(a) != await compute_fingerprint(b)
