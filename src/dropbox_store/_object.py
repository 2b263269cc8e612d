"""RemoteObject — one addressable file under a store, with lazily cached metadata."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from dropbox_store._errors import FeatureNotSupported, InvalidPath
from dropbox_store._features import Feature
from dropbox_store._hash import HASH_TYPE
from dropbox_store._metadata import LazyMetadata, MetadataState
from dropbox_store._models import CommitInfo, Metadata, WriteMode
from dropbox_store._path import normalize_relative
from dropbox_store._transport import ApiError
from dropbox_store._upload import round_to_second

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from typing import BinaryIO

    from dropbox_store._models import FileEntry
    from dropbox_store._store import DropboxStore

log = logging.getLogger(__name__)


def range_header(offset: int, length: Optional[int]) -> Optional[str]:
    """Build an HTTP ``Range`` value, or ``None`` for the whole object."""
    if offset < 0:
        raise ValueError(f"offset must not be negative, got {offset}")
    if length is None:
        return f"bytes={offset}-" if offset else None
    if length <= 0:
        raise ValueError(f"length must be positive, got {length}")
    return f"bytes={offset}-{offset + length - 1}"


class RemoteObject:
    """A file in a :class:`DropboxStore`.

    Built either with known metadata (from a listing, upload, copy or move
    result) or without, in which case size, time and hash are fetched on
    first access and kept from then on.

    :param store: The owning store.
    :param remote: Store-relative path. Never changes after creation.
    :param metadata: Known metadata, if any.
    :raises InvalidPath: If ``remote`` is empty or unsafe.
    """

    def __init__(self, store: DropboxStore, remote: str, metadata: Optional[Metadata] = None) -> None:
        if not normalize_relative(remote):
            raise InvalidPath("Object path must not be empty", path=remote, store=store.name)
        self._store = store
        self._remote = remote
        self._metadata = LazyMetadata(metadata)

    def __str__(self) -> str:
        return self._remote

    def __repr__(self) -> str:
        return f"RemoteObject(store={self._store.name!r}, remote={self._remote!r}, metadata={self._metadata.state.value})"

    @property
    def store(self) -> DropboxStore:
        return self._store

    @property
    def remote(self) -> str:
        """Store-relative path."""
        return self._remote

    @property
    def remote_path(self) -> str:
        """Absolute path in the remote namespace."""
        return self._store.scope.resolve(self._remote)

    @property
    def storable(self) -> bool:
        return True

    # region: metadata

    @property
    def metadata_state(self) -> MetadataState:
        return self._metadata.state

    def _fetch_metadata(self) -> Metadata:
        log.debug("%s: reading metadata", self)
        return Metadata.from_entry(self._store.get_file_metadata(self.remote_path))

    def metadata(self) -> Metadata:
        """Return the cached metadata, fetching it first if needed.

        :raises ObjectNotFound: If the object does not exist.
        :raises NotAFile: If the path addresses a directory.
        """
        return self._metadata.get(self._fetch_metadata)

    def set_metadata_from_entry(self, entry: FileEntry) -> None:
        self._metadata.set(Metadata.from_entry(entry))

    @property
    def size(self) -> int:
        """Size in bytes."""
        return self.metadata().size

    @property
    def modified_at(self) -> datetime:
        """Modification time (UTC, whole seconds)."""
        return self.metadata().modified_at

    def hash(self, hash_type: str = HASH_TYPE) -> str:
        """Return the service's content hash of the object.

        :raises FeatureNotSupported: For any hash type other than ``"dropbox"``.
        """
        if hash_type != HASH_TYPE:
            raise FeatureNotSupported(
                f"Hash type {hash_type!r} is not supported",
                path=self._remote,
                store=self._store.name,
                feature=f"hash:{hash_type}",
            )
        return self.metadata().content_hash

    def set_modified_at(self, when: datetime) -> None:
        """Always fails: the time can only be changed by uploading the content again.

        :raises FeatureNotSupported: Always.
        """
        self._store.features.require(Feature.SET_MOD_TIME, path=self._remote, store=self._store.name)

    # endregion

    # region: content

    def open(
        self,
        *,
        offset: int = 0,
        length: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> BinaryIO:
        """Open the object for reading.

        :param offset: First byte to read.
        :param length: Number of bytes to read, or ``None`` for the rest of the object.
        :param headers: Extra request headers passed through to the service.
        :raises ObjectNotFound: If the object does not exist.
        :raises RestrictedContent: If the service refuses to serve the content.
        """
        request_headers = dict(headers or {})
        byte_range = range_header(offset, length)
        if byte_range is not None:
            request_headers["Range"] = byte_range
        path = self.remote_path
        try:
            _, stream = self._store.pacer.call(self._store.transport.download, path, request_headers or None)
        except ApiError as exc:
            raise self._store.map_error(exc, path, "download") from exc
        return stream

    def update(self, reader: BinaryIO, modified_at: datetime, size: int) -> bool:
        """Replace the object's content with ``size`` bytes from ``reader``.

        Paths matching the store's ignored-files pattern are skipped without error
        and leave the object untouched.

        :returns: ``False`` if the path was skipped, ``True`` once uploaded.
        :raises RemoteError: If a single-call upload fails.
        :raises UploadFailed: If a chunked upload fails. Restart with a fresh reader.
        """
        path = self.remote_path
        if self._store.is_ignored(path):
            log.info("%s: file name disallowed - not uploading", self)
            return False
        commit = CommitInfo(path=path, client_modified=round_to_second(modified_at), mode=WriteMode.OVERWRITE)
        entry = self._store.uploader.upload(reader, commit, size)
        self.set_metadata_from_entry(entry)
        return True

    def remove(self) -> None:
        """Delete the object.

        :raises ObjectNotFound: If the object does not exist.
        """
        path = self.remote_path
        try:
            self._store.pacer.call_no_retry(self._store.transport.delete, path)
        except ApiError as exc:
            raise self._store.map_error(exc, path, "delete") from exc

    # endregion
