"""Configuration — config-as-code, from_dict(), multiple stores, and pacing.

Demonstrates different ways to create and use RegistryConfig, including the
configuration for the real service through the ``dropbox`` SDK.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone

from dropbox_store import MAX_UPLOAD_CHUNK_SIZE, PacerConfig, Registry, RegistryConfig, StoreProfile, TransportConfig

if __name__ == "__main__":
    now = datetime.now(tz=timezone.utc)

    # --- Option 1: Config-as-code with Python objects ---
    config = RegistryConfig(
        transports={"mem": TransportConfig(type="memory")},
        stores={
            "uploads": StoreProfile(transport="mem", root_path="uploads"),
            "reports": StoreProfile(transport="mem", root_path="reports", pacer=PacerConfig(max_sleep=5.0)),
        },
    )

    with Registry(config) as registry:
        uploads = registry.get_store("uploads")
        reports = registry.get_store("reports")

        uploads.put(io.BytesIO(b"\xff\xd8\xff\xe0fake-jpeg-data"), "photo.jpg", now, 18)
        reports.put(io.BytesIO(b"revenue,profit\n100,20\n"), "q4.csv", now, 22)

        print("Uploads:", [str(e) for e in uploads.list("")])
        print("Reports:", [str(e) for e in reports.list("")])

        # Both stores share one transport, so this copy happens server-side
        copied = reports.copy(uploads.object("photo.jpg"), "cover.jpg")
        print(f"Copied server-side: {copied.remote} ({copied.size} bytes)")

    # --- Option 2: from_dict() — e.g. loaded from TOML or JSON ---
    raw = {
        "transports": {
            "mem": {"type": "memory", "options": {"page_size": 50}},
        },
        "stores": {
            "data": {"transport": "mem", "root_path": "data", "chunk_size": 8 * 1024 * 1024},
            "logs": {"transport": "mem", "root_path": "logs", "pacer": {"min_sleep": 0.05}},
        },
    }

    config = RegistryConfig.from_dict(raw)

    with Registry(config) as registry:
        data = registry.get_store("data")
        print(f"\nfrom_dict() data chunk size: {data.uploader.chunk_size} bytes")
        print(f"from_dict() logs pacing: {registry.get_store('logs').pacer.config}")

    # --- Chunk sizes above the service limit fail when the registry is built ---
    try:
        Registry(
            RegistryConfig(
                transports={"mem": TransportConfig(type="memory")},
                stores={"big": StoreProfile(transport="mem", chunk_size=MAX_UPLOAD_CHUNK_SIZE + 1)},
            )
        )
    except ValueError as exc:
        print(f"\nRejected: {exc}")

    # --- The real service (requires the 'sdk' extra) ---
    dropbox_config = RegistryConfig(
        transports={
            "dropbox": TransportConfig(type="dropbox", options={"access_token": "<token>"}),
        },
        stores={"photos": StoreProfile(transport="dropbox", root_path="Photos")},
    )
    print(f"\nDropbox config: {dropbox_config.stores['photos']}")
