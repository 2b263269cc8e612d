"""Transport abstract base class — the boundary with the remote service's API client."""

from __future__ import annotations

import abc
import enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import BinaryIO

    from dropbox_store._models import (
        CommitInfo,
        Entry,
        FileEntry,
        FolderEntry,
        ListFolderPage,
        UploadSessionCursor,
    )


class ErrorReason(enum.Enum):
    """Structured reason attached to every transport error."""

    NOT_FOUND = "not_found"
    NOT_FILE = "not_file"
    NOT_FOLDER = "not_folder"
    RESTRICTED_CONTENT = "restricted_content"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    CONFLICT = "conflict"
    OTHER = "other"


class ApiError(Exception):
    """The only exception a transport may raise.

    :param reason: Structured reason for the failure.
    :param summary: Vendor error summary (e.g. ``"path/not_found/.."``).
    :param retry_after: Seconds the service asked the caller to wait, if any.
    """

    def __init__(self, reason: ErrorReason, summary: str = "", *, retry_after: Optional[float] = None) -> None:
        self.reason = reason
        self.summary = summary or reason.value
        self.retry_after = retry_after
        super().__init__(self.summary)

    def __repr__(self) -> str:
        args = [str(self.reason), repr(self.summary)]
        if self.retry_after is not None:
            args.append(f"retry_after={self.retry_after!r}")
        return f"ApiError({', '.join(args)})"


class Transport(abc.ABC):
    """Abstract base class for clients of the remote API.

    Every method issues exactly one remote request. Transports never retry,
    never pace, and raise only :class:`ApiError`. All paths are absolute
    (leading ``/``) except that the namespace root is addressed as ``""``.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Identifier of this transport type (e.g. ``'memory'``, ``'dropbox'``)."""

    @abc.abstractmethod
    def get_metadata(self, path: str) -> Entry:
        """Return the metadata of a file or folder."""

    @abc.abstractmethod
    def list_folder(self, path: str) -> ListFolderPage:
        """Start a non-recursive listing of a folder."""

    @abc.abstractmethod
    def list_folder_continue(self, cursor: str) -> ListFolderPage:
        """Fetch the page following ``cursor``."""

    @abc.abstractmethod
    def create_folder(self, path: str) -> FolderEntry:
        """Create a folder."""

    @abc.abstractmethod
    def delete(self, path: str) -> Entry:
        """Delete a file, or a folder and everything under it."""

    @abc.abstractmethod
    def copy(self, from_path: str, to_path: str) -> Entry:
        """Copy a file or folder server-side."""

    @abc.abstractmethod
    def move(self, from_path: str, to_path: str) -> Entry:
        """Move a file or folder server-side."""

    @abc.abstractmethod
    def download(self, path: str, headers: Optional[Mapping[str, str]] = None) -> tuple[FileEntry, BinaryIO]:
        """Download a file, passing ``headers`` (e.g. ``Range``) through to the service."""

    @abc.abstractmethod
    def upload(self, commit: CommitInfo, data: bytes) -> FileEntry:
        """Upload a whole file in one request."""

    @abc.abstractmethod
    def upload_session_start(self, data: bytes) -> str:
        """Open an upload session with its first chunk. Returns the session id."""

    @abc.abstractmethod
    def upload_session_append(self, cursor: UploadSessionCursor, data: bytes) -> None:
        """Append a chunk at ``cursor.offset``."""

    @abc.abstractmethod
    def upload_session_finish(self, cursor: UploadSessionCursor, commit: CommitInfo, data: bytes) -> FileEntry:
        """Append the final chunk and commit the session."""

    def close(self) -> None:  # noqa: B027
        """Release resources. Default is a no-op."""
