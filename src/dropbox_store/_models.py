"""Immutable value models exchanged with the transport and returned to callers."""

from __future__ import annotations

import dataclasses
import enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from datetime import datetime


@dataclasses.dataclass(frozen=True)
class FileEntry:
    """Metadata of a file as reported by the service.

    :param path_display: Display path. Only the final component's casing is reliable.
    :param path_lower: Lower-cased path.
    :param size: Size in bytes.
    :param client_modified: Modification time supplied by the uploader (UTC).
    :param content_hash: The service's content hash of the file.
    :param server_modified: Time the service last saw the file change, if known.
    :param rev: Revision identifier, if known.
    """

    path_display: str
    path_lower: str
    size: int
    client_modified: datetime
    content_hash: str
    server_modified: datetime | None = None
    rev: str | None = None


@dataclasses.dataclass(frozen=True)
class FolderEntry:
    """Metadata of a folder as reported by the service."""

    path_display: str
    path_lower: str


@dataclasses.dataclass(frozen=True)
class OtherEntry:
    """A listing entry of a shape this package does not model (e.g. a deleted file).

    :param path_display: Display path of the entry.
    :param kind: Name of the remote entry type.
    """

    path_display: str
    kind: str


Entry = Union[FileEntry, FolderEntry, OtherEntry]


@dataclasses.dataclass(frozen=True)
class ListFolderPage:
    """One page of a folder listing.

    :param entries: Entries on this page.
    :param cursor: Opaque token for ``list_folder_continue``.
    :param has_more: Whether another page follows.
    """

    entries: tuple[Entry, ...]
    cursor: str
    has_more: bool


class WriteMode(enum.Enum):
    """What the service should do when the commit path already exists."""

    ADD = "add"
    OVERWRITE = "overwrite"


@dataclasses.dataclass(frozen=True)
class CommitInfo:
    """Describes where and how an uploaded file is committed.

    :param path: Absolute destination path.
    :param client_modified: Modification time, whole seconds, UTC.
    :param mode: Conflict policy. Last write wins by default.
    """

    path: str
    client_modified: datetime
    mode: WriteMode = WriteMode.OVERWRITE


@dataclasses.dataclass(frozen=True)
class UploadSessionCursor:
    """Position within an upload session."""

    session_id: str
    offset: int


@dataclasses.dataclass(frozen=True)
class Metadata:
    """The cached size, time and hash of a remote object."""

    size: int
    modified_at: datetime
    content_hash: str

    @classmethod
    def from_entry(cls, entry: FileEntry) -> Metadata:
        return cls(size=entry.size, modified_at=entry.client_modified, content_hash=entry.content_hash)


@dataclasses.dataclass(frozen=True, eq=False)
class Directory:
    """A directory found by a listing.

    :param path: Store-relative path of the directory.
    :param modified_at: Time the listing was taken. The service reports none for folders.
    """

    path: str
    modified_at: datetime

    @property
    def name(self) -> str:
        """Final component of the path."""
        return self.path.rsplit("/", 1)[-1]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Directory):
            return self.path.lower() == other.path.lower()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.path.lower())
