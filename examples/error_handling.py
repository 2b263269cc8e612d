"""Error handling — catching ObjectNotFound, DirectoryNotEmpty, InvalidPath, etc.

Demonstrates the normalized error hierarchy and how to handle errors
programmatically using structured attributes.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone

from dropbox_store import (
    ApiError,
    CrossStoreOperation,
    DirectoryNotEmpty,
    DropboxStore,
    ErrorReason,
    InvalidPath,
    ObjectNotFound,
    RestrictedContent,
    StoreConfig,
    StoreError,
    is_no_retry,
)
from dropbox_store.transports import MemoryTransport

if __name__ == "__main__":
    transport = MemoryTransport()
    now = datetime.now(tz=timezone.utc)

    with DropboxStore(transport, StoreConfig(name="files", root_path="files")) as store:
        # --- ObjectNotFound ---
        try:
            store.new_object("nonexistent.txt")
        except ObjectNotFound as exc:
            print(f"ObjectNotFound: {exc}")
            print(f"  path={exc.path}, store={exc.store}")

        # --- DirectoryNotEmpty ---
        store.put(io.BytesIO(b"data"), "folder/existing.txt", now, 4)
        try:
            store.rmdir("folder")
        except DirectoryNotEmpty as exc:
            print(f"\nDirectoryNotEmpty: {exc}")

        # --- InvalidPath (path traversal attempt) ---
        try:
            store.object("../../etc/passwd")
        except InvalidPath as exc:
            print(f"\nInvalidPath: {exc}")

        # --- RestrictedContent is never retried ---
        transport.restrict("/files/folder/existing.txt")
        try:
            store.object("folder/existing.txt").open()
        except RestrictedContent as exc:
            print(f"\nRestrictedContent: {exc} (no_retry={is_no_retry(exc)})")

        # --- Server-side copies need a shared transport ---
        other = DropboxStore(MemoryTransport(), StoreConfig(name="elsewhere"))
        try:
            store.copy(other.put(io.BytesIO(b"x"), "x.txt", now, 1), "x.txt")
        except CrossStoreOperation as exc:
            print(f"\nCrossStoreOperation: {exc}")
            print(f"  operation={exc.operation}")

        # --- Transient failures are retried by the pacer ---
        transport.fail_next("get_metadata", ApiError(ErrorReason.RATE_LIMITED, "too_many_requests/"), times=2)
        print(f"\nSize after two throttled attempts: {store.new_object('folder/existing.txt').size}")

        # --- Catch any dropbox-store error with the base class ---
        for path in ["missing.txt", "../../escape"]:
            try:
                store.new_object(path)
            except StoreError as exc:
                print(f"\nStoreError ({type(exc).__name__}): {exc}")
