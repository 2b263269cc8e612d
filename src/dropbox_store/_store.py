"""DropboxStore — the primary user-facing abstraction."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from dropbox_store._errors import (
    CrossStoreOperation,
    DirectoryExists,
    DirectoryNotEmpty,
    DirectoryNotFound,
    InvalidPath,
    IsAFile,
    NotAFile,
    ObjectNotFound,
    RemoteError,
)
from dropbox_store._features import DROPBOX_FEATURES
from dropbox_store._hash import HASH_TYPE
from dropbox_store._models import FileEntry, FolderEntry, Metadata
from dropbox_store._object import RemoteObject
from dropbox_store._pacer import Pacer
from dropbox_store._path import PathScope
from dropbox_store._transport import ApiError, ErrorReason
from dropbox_store._upload import ChunkedUploader
from dropbox_store._walker import ListingWalker

if TYPE_CHECKING:
    from datetime import datetime
    from types import TracebackType
    from typing import BinaryIO

    from dropbox_store._config import StoreConfig
    from dropbox_store._errors import StoreError
    from dropbox_store._features import FeatureSet
    from dropbox_store._models import Entry
    from dropbox_store._transport import Transport
    from dropbox_store._types import DirEntry

log = logging.getLogger(__name__)

#: Modification times are stored to the second.
PRECISION = timedelta(seconds=1)


class DropboxStore:
    """A directory tree of the remote namespace, scoped to a root path.

    All relative path arguments are normalized and resolved under the root
    before being sent to the transport. Every remote call goes through one
    shared :class:`Pacer`.

    If the configured root turns out to address a file, the store is rooted
    at its parent instead; :attr:`root_is_file` is then ``True`` and
    :attr:`root_file` names the file.

    :param transport: The remote API client.
    :param config: Store configuration. Validated immediately.
    :param pacer: Pacer to use instead of one built from ``config.pacer``.
    :raises ValueError: If the configuration is invalid.
    """

    def __init__(self, transport: Transport, config: StoreConfig, *, pacer: Optional[Pacer] = None) -> None:
        config.validate()
        self._config = config
        self._transport = transport
        self._pacer = pacer or Pacer(config.pacer)
        self._ignored = config.ignored_files_re
        self._uploader = ChunkedUploader(transport, self._pacer, chunk_size=config.chunk_size, store_name=config.name)
        self._root_file: Optional[str] = None
        self._set_root(config.root_path)
        self._check_root_is_file()

    def _set_root(self, root: str) -> None:
        self._scope = PathScope(root)
        self._walker = ListingWalker(
            self._transport,
            self._pacer,
            self._scope,
            make_object=self._object_from_entry,
            store_name=self._config.name,
        )

    def _check_root_is_file(self) -> None:
        if self._scope.is_namespace_root:
            return
        try:
            self.get_file_metadata(self._scope.slash_root)
        except (ObjectNotFound, NotAFile):
            return
        leaf = self._scope.leaf()
        parent = self._scope.parent()
        log.info("Root %r of store %r is a file, using %r as the root", self._scope.root, self.name, parent.root)
        self._root_file = leaf
        self._set_root(parent.root)

    def __repr__(self) -> str:
        return f"DropboxStore(transport={self._transport.name!r}, name={self.name!r}, root={self.root!r})"

    def __str__(self) -> str:
        return f"Dropbox root '{self.root}'"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DropboxStore):
            return self._transport is other._transport and self._scope == other._scope
        return NotImplemented

    def __hash__(self) -> int:
        return hash((id(self._transport), self._scope))

    def close(self) -> None:
        """Close the underlying transport, releasing any held resources."""
        self._transport.close()

    def __enter__(self) -> DropboxStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # region: properties

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def root(self) -> str:
        """Root path as configured, without leading or trailing separators."""
        return self._scope.root

    @property
    def root_is_file(self) -> bool:
        """Whether the configured root addressed a file and the store was re-rooted at its parent."""
        return self._root_file is not None

    @property
    def root_file(self) -> Optional[str]:
        """Name of the file the configured root addressed, if any."""
        return self._root_file

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def pacer(self) -> Pacer:
        return self._pacer

    @property
    def scope(self) -> PathScope:
        return self._scope

    @property
    def uploader(self) -> ChunkedUploader:
        return self._uploader

    @property
    def features(self) -> FeatureSet:
        return DROPBOX_FEATURES

    @property
    def precision(self) -> timedelta:
        """Resolution of stored modification times."""
        return PRECISION

    @property
    def hashes(self) -> frozenset[str]:
        """Hash types objects of this store can report."""
        return frozenset({HASH_TYPE})

    # endregion

    # region: metadata lookups

    def map_error(
        self,
        exc: ApiError,
        path: str,
        operation: str,
        *,
        not_found: type[ObjectNotFound] | type[DirectoryNotFound] = ObjectNotFound,
    ) -> StoreError:
        """Translate a transport error on ``path`` into a store error."""
        if exc.reason is ErrorReason.NOT_FOUND:
            return not_found(f"Not found: {path}", path=path, store=self.name)
        if exc.reason is ErrorReason.NOT_FILE:
            return NotAFile(f"Not a file: {path}", path=path, store=self.name)
        if exc.reason is ErrorReason.NOT_FOLDER:
            return IsAFile(f"Not a directory: {path}", path=path, store=self.name)
        return RemoteError(f"{operation} failed: {exc.summary}", path=path, store=self.name, operation=operation)

    def _get_metadata(self, path: str) -> Optional[Entry]:
        """Metadata of an absolute path, or ``None`` if nothing is there."""
        try:
            return self._pacer.call(self._transport.get_metadata, path)
        except ApiError as exc:
            if exc.reason is ErrorReason.NOT_FOUND:
                return None
            raise self.map_error(exc, path, "get metadata") from exc

    def get_file_metadata(self, path: str) -> FileEntry:
        """Metadata of the file at an absolute path.

        :raises ObjectNotFound: If nothing is there.
        :raises NotAFile: If a folder is there.
        """
        entry = self._get_metadata(path)
        if entry is None:
            raise ObjectNotFound(f"Object not found: {path}", path=path, store=self.name)
        if not isinstance(entry, FileEntry):
            raise NotAFile(f"Not a file: {path}", path=path, store=self.name)
        return entry

    def get_dir_metadata(self, path: str) -> FolderEntry:
        """Metadata of the folder at an absolute path.

        :raises DirectoryNotFound: If nothing is there.
        :raises IsAFile: If something other than a folder is there.
        """
        entry = self._get_metadata(path)
        if entry is None:
            raise DirectoryNotFound(f"Directory not found: {path}", path=path, store=self.name)
        if not isinstance(entry, FolderEntry):
            raise IsAFile(f"Not a directory: {path}", path=path, store=self.name)
        return entry

    def _dir_exists(self, path: str) -> bool:
        try:
            self.get_dir_metadata(path)
        except DirectoryNotFound:
            return False
        return True

    def is_ignored(self, path: str) -> bool:
        """Whether uploads to ``path`` are skipped."""
        return self._ignored.search(path) is not None

    # endregion

    # region: objects

    def _object_from_entry(self, remote: str, entry: FileEntry) -> RemoteObject:
        return RemoteObject(self, remote, Metadata.from_entry(entry))

    def object(self, remote: str) -> RemoteObject:
        """Return a handle for ``remote`` without contacting the service.

        Metadata is fetched on first access.
        """
        return RemoteObject(self, remote)

    def new_object(self, remote: str) -> RemoteObject:
        """Return a handle for an existing object, with its metadata already read.

        :raises ObjectNotFound: If the object does not exist.
        :raises NotAFile: If ``remote`` is a directory.
        """
        obj = RemoteObject(self, remote)
        obj.metadata()
        return obj

    def put(self, reader: BinaryIO, remote: str, modified_at: datetime, size: int) -> Optional[RemoteObject]:
        """Upload ``size`` bytes from ``reader`` to ``remote``, replacing any existing object.

        :returns: The uploaded object, or ``None`` if ``remote`` matches the
            ignored-files pattern and nothing was uploaded.
        :raises RemoteError: If a single-call upload fails.
        :raises UploadFailed: If a chunked upload fails.
        """
        obj = RemoteObject(self, remote)
        if not obj.update(reader, modified_at, size):
            return None
        return obj

    def list(self, directory: str = "") -> list[DirEntry]:
        """List one level of a directory.

        :raises DirectoryNotFound: If the directory does not exist.
        :raises IsAFile: If the path addresses a file.
        """
        return self._walker.list(directory)

    # endregion

    # region: directories

    def mkdir(self, directory: str = "") -> None:
        """Create a directory. Existing directories are left alone.

        :raises IsAFile: If a file is at the path.
        """
        path = self._scope.resolve(directory)
        if path == "/":
            return
        try:
            self.get_dir_metadata(path)
        except DirectoryNotFound:
            pass
        else:
            return
        try:
            self._pacer.call(self._transport.create_folder, path)
        except ApiError as exc:
            raise self.map_error(exc, path, "create folder") from exc

    def rmdir(self, directory: str) -> None:
        """Remove an empty directory.

        :raises InvalidPath: If ``directory`` is the namespace root.
        :raises DirectoryNotFound: If the directory does not exist.
        :raises DirectoryNotEmpty: If the directory has entries.
        """
        path = self._scope.resolve(directory)
        if path == "/":
            raise InvalidPath("Cannot remove the root directory", path=directory, store=self.name)
        self.get_dir_metadata(path)
        if not self._walker.is_empty(path):
            raise DirectoryNotEmpty(f"Directory not empty: {path}", path=path, store=self.name)
        try:
            self._pacer.call(self._transport.delete, path)
        except ApiError as exc:
            raise self.map_error(exc, path, "delete", not_found=DirectoryNotFound) from exc

    create_directory = mkdir
    remove_directory = rmdir

    def purge(self) -> None:
        """Delete the store root and everything under it.

        :raises InvalidPath: If the store covers the whole namespace.
        :raises DirectoryNotFound: If the root does not exist.
        """
        if self._scope.is_namespace_root:
            raise InvalidPath("Cannot purge the namespace root", path=self.root, store=self.name)
        path = self._scope.slash_root
        try:
            self._pacer.call(self._transport.delete, path)
        except ApiError as exc:
            raise self.map_error(exc, path, "purge", not_found=DirectoryNotFound) from exc

    # endregion

    # region: server-side operations

    def _same_transport_object(self, src: object, operation: str) -> RemoteObject:
        if not isinstance(src, RemoteObject) or src.store.transport is not self._transport:
            log.debug("Can't %s %r into %s: not the same remote", operation, src, self)
            raise CrossStoreOperation(
                f"Cannot {operation} across stores", path=str(src), store=self.name, operation=operation
            )
        return src

    def _server_side(self, operation: str, src: RemoteObject, remote: str) -> RemoteObject:
        fn = self._transport.copy if operation == "copy" else self._transport.move
        dst = RemoteObject(self, remote)
        src_path = src.remote_path
        try:
            entry = self._pacer.call(fn, src_path, dst.remote_path)
        except ApiError as exc:
            raise self.map_error(exc, src_path, operation) from exc
        if not isinstance(entry, FileEntry):
            raise NotAFile(f"{operation} result is not a file: {dst.remote_path}", path=dst.remote, store=self.name)
        dst.set_metadata_from_entry(entry)
        return dst

    def copy(self, src: object, remote: str) -> RemoteObject:
        """Copy an object of this account to ``remote`` without transferring its content.

        :raises CrossStoreOperation: If ``src`` does not share this store's transport.
        :raises NotAFile: If the copy produced something other than a file.
        """
        return self._server_side("copy", self._same_transport_object(src, "copy"), remote)

    def move(self, src: object, remote: str) -> RemoteObject:
        """Move an object of this account to ``remote`` without transferring its content.

        :raises CrossStoreOperation: If ``src`` does not share this store's transport.
        :raises NotAFile: If the move produced something other than a file.
        """
        return self._server_side("move", self._same_transport_object(src, "move"), remote)

    def move_directory(self, src_store: object, src_remote: str, dst_remote: str) -> None:
        """Move a directory of ``src_store`` to ``dst_remote`` in this store.

        :raises CrossStoreOperation: If ``src_store`` does not share this store's transport.
        :raises DirectoryExists: If the destination directory already exists.
        :raises IsAFile: If a file is at the destination.
        :raises DirectoryNotFound: If the source directory does not exist.
        """
        if not isinstance(src_store, DropboxStore) or src_store.transport is not self._transport:
            log.debug("Can't move directory from %r into %s: not the same remote", src_store, self)
            raise CrossStoreOperation(
                "Cannot move directories across stores", path=src_remote, store=self.name, operation="move_directory"
            )
        src_path = src_store.scope.resolve(src_remote)
        dst_path = self._scope.resolve(dst_remote)
        if dst_path == "/" or self._dir_exists(dst_path):
            raise DirectoryExists(f"Directory already exists: {dst_path}", path=dst_path, store=self.name)
        try:
            self._pacer.call(self._transport.move, src_path, dst_path)
        except ApiError as exc:
            raise self.map_error(exc, src_path, "move directory", not_found=DirectoryNotFound) from exc

    # endregion
