"""ListingWalker — paginated, non-recursive directory listing."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional

from dropbox_store._errors import DirectoryNotFound, IsAFile, RemoteError
from dropbox_store._models import Directory, FileEntry, FolderEntry
from dropbox_store._path import SEPARATOR, normalize_relative
from dropbox_store._transport import ApiError, ErrorReason

if TYPE_CHECKING:
    from collections.abc import Iterator

    from dropbox_store._models import Entry, ListFolderPage
    from dropbox_store._object import RemoteObject
    from dropbox_store._pacer import Pacer
    from dropbox_store._path import PathScope
    from dropbox_store._transport import Transport
    from dropbox_store._types import DirEntry

log = logging.getLogger(__name__)


class ListingWalker:
    """Lists one directory level by draining every continuation page.

    Listing is not recursive: only the last component of a
    display path is reliably cased, so a deep listing cannot be trusted for
    the casing of intermediate directories.

    :param transport: The remote API client.
    :param pacer: Pacer shared with the owning store.
    :param scope: Root scope of the owning store.
    :param make_object: Builds an object with known metadata from a relative path and entry.
    :param store_name: Name used in error context.
    """

    def __init__(
        self,
        transport: Transport,
        pacer: Pacer,
        scope: PathScope,
        *,
        make_object: Callable[[str, FileEntry], RemoteObject],
        store_name: Optional[str] = None,
    ) -> None:
        self._transport = transport
        self._pacer = pacer
        self._scope = scope
        self._make_object = make_object
        self._store_name = store_name

    def pages(self, path: str) -> Iterator[ListFolderPage]:
        """Yield the listing pages of an absolute directory path.

        :raises DirectoryNotFound: If the directory does not exist.
        :raises IsAFile: If the path addresses a file.
        :raises RemoteError: If a listing call fails for another reason.
        """
        try:
            page = self._pacer.call(self._transport.list_folder, self._scope.api_path(path))
        except ApiError as exc:
            if exc.reason is ErrorReason.NOT_FOUND:
                raise DirectoryNotFound(f"Directory not found: {path}", path=path, store=self._store_name) from exc
            if exc.reason is ErrorReason.NOT_FOLDER:
                raise IsAFile(f"Not a directory: {path}", path=path, store=self._store_name) from exc
            raise RemoteError(
                f"list failed: {exc.summary}", path=path, store=self._store_name, operation="list"
            ) from exc
        yield page
        while page.has_more:
            try:
                page = self._pacer.call(self._transport.list_folder_continue, page.cursor)
            except ApiError as exc:
                raise RemoteError(
                    f"list continue failed: {exc.summary}",
                    path=path,
                    store=self._store_name,
                    operation="list continue",
                ) from exc
            yield page

    def list(self, directory: str = "") -> list[DirEntry]:
        """List a store-relative directory.

        Returns :class:`Directory` records and objects with known metadata, in
        the order the service sent them.
        """
        directory = normalize_relative(directory)
        listed_at = datetime.now(tz=timezone.utc)
        entries: list[DirEntry] = []
        for page in self.pages(self._scope.resolve(directory)):
            for entry in page.entries:
                item = self._convert(entry, directory, listed_at)
                if item is not None:
                    entries.append(item)
        return entries

    def is_empty(self, path: str) -> bool:
        """Whether an absolute directory path has no entries. Reads one page only."""
        page = next(self.pages(path))
        return not page.entries and not page.has_more

    def _convert(self, entry: Entry, directory: str, listed_at: datetime) -> Optional[DirEntry]:
        if isinstance(entry, FolderEntry):
            name = self._scope.strip_root(entry.path_display + SEPARATOR).strip(SEPARATOR)
            if not name or name.lower() == directory.lower():
                log.debug("Skipping listed directory %r: it is the directory being listed", entry.path_display)
                return None
            return Directory(path=name, modified_at=listed_at)
        if isinstance(entry, FileEntry):
            return self._make_object(self._scope.strip_root(entry.path_display), entry)
        log.warning("Skipping unknown listing entry %r of type %s", entry.path_display, entry.kind)
        return None
