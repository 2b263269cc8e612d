"""The service's content hash, computed locally for comparison with remote objects."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import BinaryIO

HASH_TYPE = "dropbox"

BLOCK_SIZE = 4 * 1024 * 1024


class ContentHasher:
    """Incremental content hash: SHA-256 over the SHA-256 digests of 4 MiB blocks."""

    def __init__(self) -> None:
        self._overall = hashlib.sha256()
        self._block = hashlib.sha256()
        self._block_pos = 0

    def update(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            if self._block_pos == BLOCK_SIZE:
                self._overall.update(self._block.digest())
                self._block = hashlib.sha256()
                self._block_pos = 0
            take = min(BLOCK_SIZE - self._block_pos, len(view))
            self._block.update(view[:take])
            self._block_pos += take
            view = view[take:]

    def hexdigest(self) -> str:
        overall = self._overall.copy()
        if self._block_pos:
            overall.update(self._block.digest())
        return overall.hexdigest()


def dropbox_content_hash(stream: BinaryIO, *, read_size: int = 1024 * 1024) -> str:
    """Compute the content hash of everything left in ``stream``."""
    hasher = ContentHasher()
    while True:
        chunk = stream.read(read_size)
        if not chunk:
            break
        hasher.update(chunk)
    return hasher.hexdigest()


def content_hash_bytes(data: bytes) -> str:
    hasher = ContentHasher()
    hasher.update(data)
    return hasher.hexdigest()
