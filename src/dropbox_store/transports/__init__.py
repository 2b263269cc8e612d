"""Transport implementations."""

from dropbox_store.transports._memory import MemoryTransport
from dropbox_store.transports._sdk import DropboxSDKTransport

__all__ = ["DropboxSDKTransport", "MemoryTransport"]
