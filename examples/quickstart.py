"""Quickstart — minimal config, upload, list and read with dropbox-store.

Demonstrates:
- Creating a RegistryConfig with the in-memory transport
- Opening a Registry and getting a store
- Uploading, listing and reading an object
"""

from __future__ import annotations

import io
from datetime import datetime, timezone

from dropbox_store import Registry, RegistryConfig, StoreProfile, TransportConfig

if __name__ == "__main__":
    config = RegistryConfig(
        transports={"mem": TransportConfig(type="memory")},
        stores={"docs": StoreProfile(transport="mem", root_path="Documents")},
    )

    with Registry(config) as registry:
        store = registry.get_store("docs")
        print(f"Opened {store}")

        # Upload an object
        data = b"Hello, world!"
        obj = store.put(io.BytesIO(data), "hello.txt", datetime.now(tz=timezone.utc), len(data))
        print(f"Uploaded {obj.remote}: {obj.size} bytes, modified {obj.modified_at}")

        # List the root of the store
        for entry in store.list(""):
            print(f"Listed: {entry}")

        # Read it back
        print(f"Content: {store.object('hello.txt').open().read()!r}")
        print(f"Content hash: {obj.hash()}")
