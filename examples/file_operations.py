"""File operations — directories, server-side copy and move, and removal.

Demonstrates mkdir/rmdir, copy, move, move_directory and purge.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone

from dropbox_store import Directory, DirectoryNotEmpty, DropboxStore, StoreConfig
from dropbox_store.transports import MemoryTransport

if __name__ == "__main__":
    transport = MemoryTransport()
    now = datetime.now(tz=timezone.utc)
    store = DropboxStore(transport, StoreConfig(name="work", root_path="work"))

    # Directories
    store.mkdir("inbox")
    store.mkdir("inbox")  # already there: nothing to do
    store.put(io.BytesIO(b"draft"), "inbox/draft.txt", now, 5)
    print("Root:", [f"{e}/" if isinstance(e, Directory) else str(e) for e in store.list("")])

    try:
        store.rmdir("inbox")
    except DirectoryNotEmpty as exc:
        print(f"Cannot remove: {exc}")

    # Server-side copy and move
    draft = store.object("inbox/draft.txt")
    final = store.copy(draft, "inbox/final.txt")
    print(f"Copied to {final.remote}, hash {final.hash()[:12]}...")
    archived = store.move(final, "archive/final.txt")
    print(f"Moved to {archived.remote}")

    # Move a whole directory
    store.move_directory(store, "inbox", "processed")
    print("After move_directory:", [str(e) for e in store.list("processed")])

    # Remove a single object, then everything
    store.object("processed/draft.txt").remove()
    store.rmdir("processed")
    store.purge()
    print(f"Root still exists: {transport.exists('/work')}")
