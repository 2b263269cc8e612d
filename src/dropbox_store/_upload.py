"""ChunkedUploader — single-call uploads for small objects, start/append/finish sessions for large ones."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

from dropbox_store._errors import RemoteError, UploadFailed
from dropbox_store._models import UploadSessionCursor
from dropbox_store._transport import ApiError

if TYPE_CHECKING:
    from typing import BinaryIO

    from dropbox_store._models import CommitInfo, FileEntry
    from dropbox_store._pacer import Pacer
    from dropbox_store._transport import Transport

log = logging.getLogger(__name__)


def round_to_second(when: datetime) -> datetime:
    """Convert to UTC and round to whole seconds. Naive times are taken as UTC.

    The service does not store sub-second precision.
    """
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    when = when.astimezone(timezone.utc)
    return (when + timedelta(microseconds=500_000)).replace(microsecond=0)


def _read_exactly(reader: BinaryIO, size: int) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        chunk = reader.read(size - len(buf))
        if not chunk:
            break
        buf += chunk
    return bytes(buf)


@dataclasses.dataclass
class UploadSession:
    """State of one chunked upload. Driven by a single thread from a single reader.

    :param session_id: Opaque session token from the service.
    :param commit: Where the finished upload is committed.
    :param offset: Bytes acknowledged by the service so far.
    """

    session_id: str
    commit: CommitInfo
    offset: int = 0

    @property
    def cursor(self) -> UploadSessionCursor:
        return UploadSessionCursor(session_id=self.session_id, offset=self.offset)

    def advance(self, acknowledged: int) -> None:
        if acknowledged <= 0:
            raise ValueError(f"Session offset must strictly increase, got {acknowledged} more bytes")
        self.offset += acknowledged


class ChunkedUploader:
    """Uploads a reader's content to one destination.

    Every remote call is made without retries: a failed call has already
    consumed its bytes from the reader, which cannot be rewound, so the whole
    upload must be restarted from a fresh reader.

    :param transport: The remote API client.
    :param pacer: Pacer shared with the owning store.
    :param chunk_size: Chunk-size ceiling in bytes.
    :param store_name: Name used in error context.
    """

    def __init__(
        self,
        transport: Transport,
        pacer: Pacer,
        *,
        chunk_size: int,
        store_name: Optional[str] = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size!r}")
        self._transport = transport
        self._pacer = pacer
        self._chunk_size = chunk_size
        self._store_name = store_name

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def chunk_count(self, size: int) -> int:
        """Number of calls a chunked upload of ``size`` bytes makes."""
        return size // self._chunk_size + 1

    def upload(self, reader: BinaryIO, commit: CommitInfo, size: int) -> FileEntry:
        """Upload ``size`` bytes from ``reader`` and commit them.

        :raises RemoteError: If a single-call upload fails.
        :raises UploadFailed: If any call of a chunked session fails, or ``reader``
            holds fewer than ``size`` bytes.
        """
        if size > self._chunk_size:
            return self._upload_chunked(reader, commit, size)
        data = self._read(reader, commit, size, offset=0, length=size)
        try:
            return self._pacer.call_no_retry(self._transport.upload, commit, data)
        except ApiError as exc:
            raise RemoteError(
                f"upload failed: {exc.summary}", path=commit.path, store=self._store_name, operation="upload"
            ) from exc

    def _upload_chunked(self, reader: BinaryIO, commit: CommitInfo, size: int) -> FileEntry:
        chunks = self.chunk_count(size)

        log.debug("Uploading chunk 1/%d to %s", chunks, commit.path)
        data = self._read(reader, commit, size, offset=0, length=self._chunk_size)
        try:
            session_id = self._pacer.call_no_retry(self._transport.upload_session_start, data)
        except ApiError as exc:
            raise self._failed("start", exc, commit, offset=0) from exc
        session = UploadSession(session_id=session_id, commit=commit)
        session.advance(len(data))

        for i in range(2, chunks):
            log.debug("Uploading chunk %d/%d to %s", i, chunks, commit.path)
            data = self._read(reader, commit, size, offset=session.offset, length=self._chunk_size)
            try:
                self._pacer.call_no_retry(self._transport.upload_session_append, session.cursor, data)
            except ApiError as exc:
                raise self._failed("append", exc, commit, offset=session.offset) from exc
            session.advance(len(data))

        log.debug("Uploading chunk %d/%d to %s", chunks, chunks, commit.path)
        data = self._read(reader, commit, size, offset=session.offset, length=size - session.offset)
        try:
            return self._pacer.call_no_retry(self._transport.upload_session_finish, session.cursor, commit, data)
        except ApiError as exc:
            raise self._failed("finish", exc, commit, offset=session.offset) from exc

    def _read(self, reader: BinaryIO, commit: CommitInfo, size: int, *, offset: int, length: int) -> bytes:
        data = _read_exactly(reader, length)
        if len(data) < length:
            raise UploadFailed(
                f"Source ended after {offset + len(data)} bytes, expected {size}",
                path=commit.path,
                store=self._store_name,
                offset=offset,
            )
        return data

    def _failed(self, phase: str, exc: ApiError, commit: CommitInfo, *, offset: int) -> UploadFailed:
        return UploadFailed(
            f"upload session {phase} failed: {exc.summary}",
            path=commit.path,
            store=self._store_name,
            offset=offset,
        )
