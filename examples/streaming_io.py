"""Streaming I/O — chunked uploads, ranged reads and content hashes.

Demonstrates how large uploads are split into upload-session calls and how
to read part of an object.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone

from dropbox_store import DropboxStore, StoreConfig, dropbox_content_hash
from dropbox_store.transports import MemoryTransport

if __name__ == "__main__":
    transport = MemoryTransport()
    # A tiny chunk size so the session calls are visible
    store = DropboxStore(transport, StoreConfig(name="media", chunk_size=1024))

    payload = bytes(range(256)) * 20
    obj = store.put(io.BytesIO(payload), "video.bin", datetime.now(tz=timezone.utc), len(payload))
    print(f"Uploaded {obj.size} bytes in {store.uploader.chunk_count(len(payload))} calls:")
    for name, _ in transport.calls:
        print(f"  {name}")

    # Ranged read
    with obj.open(offset=1000, length=16) as stream:
        print(f"\nBytes 1000-1015: {stream.read().hex()}")

    # Compare with a locally computed hash
    local = dropbox_content_hash(io.BytesIO(payload))
    print(f"\nHashes match: {local == obj.hash()}")
