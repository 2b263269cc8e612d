"""Filesystem-like access to a Dropbox-style remote object store."""

from dropbox_store._config import (
    DEFAULT_IGNORED_FILES,
    DEFAULT_UPLOAD_CHUNK_SIZE,
    MAX_UPLOAD_CHUNK_SIZE,
    PacerConfig,
    RegistryConfig,
    StoreConfig,
    StoreProfile,
    TransportConfig,
)
from dropbox_store._errors import (
    CrossStoreOperation,
    DirectoryExists,
    DirectoryNotEmpty,
    DirectoryNotFound,
    FeatureNotSupported,
    InvalidPath,
    IsAFile,
    NotAFile,
    ObjectNotFound,
    RemoteError,
    RestrictedContent,
    RetriesExhausted,
    StoreError,
    UploadFailed,
    is_no_retry,
)
from dropbox_store._features import DROPBOX_FEATURES, Feature, FeatureSet
from dropbox_store._hash import HASH_TYPE, dropbox_content_hash
from dropbox_store._metadata import LazyMetadata, MetadataState
from dropbox_store._models import (
    CommitInfo,
    Directory,
    FileEntry,
    FolderEntry,
    ListFolderPage,
    Metadata,
    OtherEntry,
    UploadSessionCursor,
    WriteMode,
)
from dropbox_store._object import RemoteObject
from dropbox_store._pacer import Pacer, should_retry
from dropbox_store._path import PathScope
from dropbox_store._registry import Registry, register_transport
from dropbox_store._store import DropboxStore
from dropbox_store._transport import ApiError, ErrorReason, Transport
from dropbox_store._upload import ChunkedUploader, UploadSession
from dropbox_store._walker import ListingWalker

__version__ = "0.1.0"

__all__ = [
    # Core
    "DropboxStore",
    "RemoteObject",
    "Registry",
    "register_transport",
    # Transport boundary
    "Transport",
    "ApiError",
    "ErrorReason",
    # Components
    "Pacer",
    "should_retry",
    "PathScope",
    "LazyMetadata",
    "MetadataState",
    "ListingWalker",
    "ChunkedUploader",
    "UploadSession",
    # Models
    "Directory",
    "Metadata",
    "FileEntry",
    "FolderEntry",
    "OtherEntry",
    "ListFolderPage",
    "CommitInfo",
    "UploadSessionCursor",
    "WriteMode",
    # Features & hashing
    "Feature",
    "FeatureSet",
    "DROPBOX_FEATURES",
    "HASH_TYPE",
    "dropbox_content_hash",
    # Config
    "PacerConfig",
    "StoreConfig",
    "TransportConfig",
    "StoreProfile",
    "RegistryConfig",
    "DEFAULT_IGNORED_FILES",
    "DEFAULT_UPLOAD_CHUNK_SIZE",
    "MAX_UPLOAD_CHUNK_SIZE",
    # Errors
    "StoreError",
    "ObjectNotFound",
    "DirectoryNotFound",
    "IsAFile",
    "NotAFile",
    "RestrictedContent",
    "RetriesExhausted",
    "InvalidPath",
    "DirectoryExists",
    "DirectoryNotEmpty",
    "CrossStoreOperation",
    "FeatureNotSupported",
    "UploadFailed",
    "RemoteError",
    "is_no_retry",
    # Version
    "__version__",
]
