"""In-memory transport — stdlib-only stand-in for the remote service."""

from __future__ import annotations

import dataclasses
import io
import itertools
import posixpath
import re
import threading
from collections import deque
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional, Union

from dropbox_store._hash import content_hash_bytes
from dropbox_store._models import FileEntry, FolderEntry, ListFolderPage, WriteMode
from dropbox_store._transport import ApiError, ErrorReason, Transport

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import BinaryIO

    from dropbox_store._models import CommitInfo, Entry, UploadSessionCursor

_RANGE_RE = re.compile(r"^bytes=(\d+)-(\d*)$")


@dataclasses.dataclass
class _File:
    display: str
    data: bytes
    client_modified: datetime
    server_modified: datetime
    rev: str

    def entry(self) -> FileEntry:
        return FileEntry(
            path_display=self.display,
            path_lower=self.display.lower(),
            size=len(self.data),
            client_modified=self.client_modified,
            content_hash=content_hash_bytes(self.data),
            server_modified=self.server_modified,
            rev=self.rev,
        )


@dataclasses.dataclass
class _Folder:
    display: str

    def entry(self) -> FolderEntry:
        return FolderEntry(path_display=self.display, path_lower=self.display.lower())


_Node = Union[_File, _Folder]


def _parent_key(key: str) -> str:
    parent = posixpath.dirname(key)
    return "" if parent == "/" else parent


class MemoryTransport(Transport):
    """A case-insensitive namespace held in memory.

    Behaves like the remote service where the store depends on it: lookups
    ignore case while entries keep their display casing, listings are paged,
    upload sessions check offsets, and folders are created implicitly as
    parents of new entries. Every request is recorded in :attr:`calls`.

    :param page_size: Maximum entries per listing page.
    """

    def __init__(self, page_size: int = 100) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size!r}")
        self._page_size = page_size
        self._lock = threading.RLock()
        self._nodes: dict[str, _Node] = {}
        self._cursors: dict[str, list[Entry]] = {}
        self._sessions: dict[str, bytearray] = {}
        self._restricted: set[str] = set()
        self._faults: dict[str, deque[ApiError]] = {}
        self._ids = itertools.count(1)
        self.calls: list[tuple[str, tuple[object, ...]]] = []

    @property
    def name(self) -> str:
        return "memory"

    # region: test hooks

    def call_names(self) -> list[str]:
        """Names of the requests made so far, in order."""
        return [name for name, _ in self.calls]

    def fail_next(self, method: str, error: ApiError, times: int = 1) -> None:
        """Make the next ``times`` calls of ``method`` raise ``error``."""
        queue = self._faults.setdefault(method, deque())
        queue.extend([error] * times)

    def restrict(self, path: str) -> None:
        """Refuse downloads of ``path`` as restricted content."""
        self._restricted.add(path.lower())

    def add_file(self, path: str, data: bytes = b"", client_modified: Optional[datetime] = None) -> FileEntry:
        """Create or replace a file without recording a request."""
        with self._lock:
            when = client_modified or datetime.now(tz=timezone.utc).replace(microsecond=0)
            return self._write(path, data, when, WriteMode.OVERWRITE)

    def add_folder(self, path: str) -> FolderEntry:
        """Create a folder and its parents without recording a request."""
        with self._lock:
            return self._ensure_folder(path)

    def read_file(self, path: str) -> bytes:
        """Content of a stored file, without recording a request."""
        node = self._nodes.get(path.lower())
        if not isinstance(node, _File):
            raise KeyError(path)
        return node.data

    def exists(self, path: str) -> bool:
        return path.lower() in self._nodes

    # endregion

    # region: helpers

    def _record(self, method: str, *args: object) -> None:
        self.calls.append((method, args))
        queue = self._faults.get(method)
        if queue:
            raise queue.popleft()

    def _lookup(self, path: str, prefix: str = "path") -> _Node:
        node = self._nodes.get(path.lower())
        if node is None:
            raise ApiError(ErrorReason.NOT_FOUND, f"{prefix}/not_found/")
        return node

    def _display(self, path: str) -> str:
        parent = self._nodes.get(_parent_key(path.lower()))
        leaf = posixpath.basename(path)
        if parent is None:
            return f"{_parent_key(path)}/{leaf}"
        return f"{parent.display}/{leaf}"

    def _ensure_folder(self, path: str) -> FolderEntry:
        key = path.lower()
        if not key or key == "/":
            return FolderEntry(path_display="", path_lower="")
        node = self._nodes.get(key)
        if isinstance(node, _Folder):
            return node.entry()
        if node is not None:
            raise ApiError(ErrorReason.CONFLICT, "path/conflict/file/")
        self._ensure_folder(_parent_key(path))
        folder = _Folder(display=self._display(path))
        self._nodes[key] = folder
        return folder.entry()

    def _write(self, path: str, data: bytes, client_modified: datetime, mode: WriteMode) -> FileEntry:
        key = path.lower()
        existing = self._nodes.get(key)
        if isinstance(existing, _Folder):
            raise ApiError(ErrorReason.CONFLICT, "path/conflict/folder/")
        if existing is not None and mode is WriteMode.ADD:
            raise ApiError(ErrorReason.CONFLICT, "path/conflict/file/")
        self._ensure_folder(_parent_key(path))
        display = existing.display if existing is not None else self._display(path)
        node = _File(
            display=display,
            data=bytes(data),
            client_modified=client_modified,
            server_modified=datetime.now(tz=timezone.utc).replace(microsecond=0),
            rev=f"{next(self._ids):09x}",
        )
        self._nodes[key] = node
        return node.entry()

    def _subtree(self, key: str) -> list[str]:
        return [k for k in self._nodes if k == key or k.startswith(key + "/")]

    def _transfer(self, from_path: str, to_path: str, *, remove_source: bool) -> Entry:
        src_key = from_path.lower()
        node = self._lookup(from_path, "from_lookup")
        dst_key = to_path.lower()
        if dst_key in self._nodes:
            raise ApiError(ErrorReason.CONFLICT, "to/conflict/")
        if dst_key.startswith(src_key + "/"):
            raise ApiError(ErrorReason.OTHER, "cant_move_folder_into_itself")
        self._ensure_folder(_parent_key(to_path))
        dst_display = self._display(to_path)
        moved: dict[str, _Node] = {}
        for key in self._subtree(src_key):
            child = self._nodes[key]
            suffix = child.display[len(node.display) :]
            copied = dataclasses.replace(child, display=dst_display + suffix)
            if isinstance(copied, _File) and not remove_source:
                copied.rev = f"{next(self._ids):09x}"
            moved[dst_key + key[len(src_key) :]] = copied
        if remove_source:
            for key in self._subtree(src_key):
                del self._nodes[key]
        self._nodes.update(moved)
        return moved[dst_key].entry()

    # endregion

    # region: metadata and listing

    def get_metadata(self, path: str) -> Entry:
        with self._lock:
            self._record("get_metadata", path)
            if not path or path == "/":
                raise ApiError(ErrorReason.OTHER, "path/malformed_path/")
            return self._lookup(path).entry()

    def list_folder(self, path: str) -> ListFolderPage:
        with self._lock:
            self._record("list_folder", path)
            key = path.lower()
            if key:
                node = self._lookup(path)
                if not isinstance(node, _Folder):
                    raise ApiError(ErrorReason.NOT_FOLDER, "path/not_folder/")
            entries = [node.entry() for k, node in self._nodes.items() if k != key and _parent_key(k) == key]
            return self._page(entries)

    def list_folder_continue(self, cursor: str) -> ListFolderPage:
        with self._lock:
            self._record("list_folder_continue", cursor)
            try:
                remaining = self._cursors.pop(cursor)
            except KeyError:
                raise ApiError(ErrorReason.OTHER, "reset/") from None
            return self._page(remaining)

    def _page(self, entries: list[Entry]) -> ListFolderPage:
        cursor = f"cursor-{next(self._ids)}"
        head, rest = entries[: self._page_size], entries[self._page_size :]
        if rest:
            self._cursors[cursor] = rest
        return ListFolderPage(entries=tuple(head), cursor=cursor, has_more=bool(rest))

    # endregion

    # region: mutations

    def create_folder(self, path: str) -> FolderEntry:
        with self._lock:
            self._record("create_folder", path)
            if path.lower() in self._nodes:
                raise ApiError(ErrorReason.CONFLICT, "path/conflict/folder/")
            return self._ensure_folder(path)

    def delete(self, path: str) -> Entry:
        with self._lock:
            self._record("delete", path)
            entry = self._lookup(path, "path_lookup").entry()
            for key in self._subtree(path.lower()):
                del self._nodes[key]
            return entry

    def copy(self, from_path: str, to_path: str) -> Entry:
        with self._lock:
            self._record("copy", from_path, to_path)
            return self._transfer(from_path, to_path, remove_source=False)

    def move(self, from_path: str, to_path: str) -> Entry:
        with self._lock:
            self._record("move", from_path, to_path)
            return self._transfer(from_path, to_path, remove_source=True)

    # endregion

    # region: content

    def download(self, path: str, headers: Optional[Mapping[str, str]] = None) -> tuple[FileEntry, BinaryIO]:
        with self._lock:
            self._record("download", path, dict(headers or {}))
            node = self._lookup(path)
            if not isinstance(node, _File):
                raise ApiError(ErrorReason.NOT_FILE, "path/not_file/")
            if path.lower() in self._restricted:
                raise ApiError(ErrorReason.RESTRICTED_CONTENT, "path/restricted_content/")
            data = node.data
            byte_range = (headers or {}).get("Range")
            if byte_range is not None:
                match = _RANGE_RE.match(byte_range)
                if match is None:
                    raise ApiError(ErrorReason.OTHER, f"invalid range {byte_range!r}")
                start = int(match.group(1))
                end = int(match.group(2)) + 1 if match.group(2) else len(data)
                data = data[start:end]
            return node.entry(), io.BytesIO(data)

    def upload(self, commit: CommitInfo, data: bytes) -> FileEntry:
        with self._lock:
            self._record("upload", commit, len(data))
            return self._write(commit.path, data, commit.client_modified, commit.mode)

    def upload_session_start(self, data: bytes) -> str:
        with self._lock:
            self._record("upload_session_start", len(data))
            session_id = f"session-{next(self._ids)}"
            self._sessions[session_id] = bytearray(data)
            return session_id

    def _session(self, cursor: UploadSessionCursor) -> bytearray:
        buf = self._sessions.get(cursor.session_id)
        if buf is None:
            raise ApiError(ErrorReason.OTHER, "lookup_failed/not_found/")
        if cursor.offset != len(buf):
            raise ApiError(ErrorReason.OTHER, f"lookup_failed/incorrect_offset/{len(buf)}")
        return buf

    def upload_session_append(self, cursor: UploadSessionCursor, data: bytes) -> None:
        with self._lock:
            self._record("upload_session_append", cursor, len(data))
            self._session(cursor).extend(data)

    def upload_session_finish(self, cursor: UploadSessionCursor, commit: CommitInfo, data: bytes) -> FileEntry:
        with self._lock:
            self._record("upload_session_finish", cursor, commit, len(data))
            buf = self._session(cursor)
            buf.extend(data)
            entry = self._write(commit.path, bytes(buf), commit.client_modified, commit.mode)
            del self._sessions[cursor.session_id]
            return entry

    # endregion
