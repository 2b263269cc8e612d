"""Transport for the real service, using the official ``dropbox`` SDK."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from dropbox_store._models import FileEntry, FolderEntry, ListFolderPage, OtherEntry, WriteMode
from dropbox_store._transport import ApiError, ErrorReason, Transport

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from typing import BinaryIO

    from dropbox_store._models import CommitInfo, Entry, UploadSessionCursor

log = logging.getLogger(__name__)

# Union tags under which the SDK reports a failed path lookup.
_LOOKUP_TAGS = ("path", "path_lookup", "from_lookup")

_LOOKUP_REASONS = (
    ("not_found", ErrorReason.NOT_FOUND),
    ("not_file", ErrorReason.NOT_FILE),
    ("not_folder", ErrorReason.NOT_FOLDER),
    ("restricted_content", ErrorReason.RESTRICTED_CONTENT),
)


def _utc(when: Optional[datetime]) -> Optional[datetime]:
    """SDK timestamps are naive UTC."""
    if when is None:
        return None
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


def _naive_utc(when: datetime) -> datetime:
    if when.tzinfo is None:
        return when
    return when.astimezone(timezone.utc).replace(tzinfo=None)


def _is_tag(union: Any, tag: str) -> bool:
    check = getattr(union, f"is_{tag}", None)
    return bool(check is not None and check())


def classify_api_error(error: Any) -> ErrorReason:
    """Derive a reason from an SDK error union such as ``GetMetadataError``."""
    for tag in _LOOKUP_TAGS:
        if _is_tag(error, tag):
            lookup = getattr(error, f"get_{tag}")()
            for lookup_tag, reason in _LOOKUP_REASONS:
                if _is_tag(lookup, lookup_tag):
                    return reason
            if _is_tag(lookup, "conflict"):
                return ErrorReason.CONFLICT
    if _is_tag(error, "to"):
        if _is_tag(error.get_to(), "conflict"):
            return ErrorReason.CONFLICT
    if _is_tag(error, "too_many_write_operations") or _is_tag(error, "too_many_files"):
        return ErrorReason.RATE_LIMITED
    return ErrorReason.OTHER


def convert_metadata(md: Any) -> Entry:
    """Convert SDK metadata into an entry model."""
    import dropbox

    if isinstance(md, dropbox.files.FileMetadata):
        return FileEntry(
            path_display=md.path_display,
            path_lower=md.path_lower,
            size=md.size,
            client_modified=_utc(md.client_modified),  # type: ignore[arg-type]
            content_hash=md.content_hash or "",
            server_modified=_utc(md.server_modified),
            rev=md.rev,
        )
    if isinstance(md, dropbox.files.FolderMetadata):
        return FolderEntry(path_display=md.path_display, path_lower=md.path_lower)
    return OtherEntry(path_display=getattr(md, "path_display", "") or "", kind=type(md).__name__)


class DropboxSDKTransport(Transport):
    """Transport backed by a ``dropbox.Dropbox`` client.

    Obtaining and refreshing credentials is left to the caller: pass a
    ready client, or an access token to build one from. The SDK's own retry
    logic is switched off for clients built here, since the store paces and
    retries every call itself.

    :param client: A configured ``dropbox.Dropbox`` client.
    :param access_token: OAuth2 access token, used when ``client`` is not given.
    :param timeout: Request timeout in seconds for clients built here.
    :raises ValueError: If neither ``client`` nor ``access_token`` is given.
    """

    def __init__(
        self,
        client: Any = None,
        *,
        access_token: Optional[str] = None,
        timeout: float = 100.0,
    ) -> None:
        if client is None and not access_token:
            raise ValueError("Either client or access_token is required")
        self._client_instance = client
        self._access_token = access_token
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "dropbox"

    # region: lazy client

    @property
    def _client(self) -> Any:
        if self._client_instance is None:
            import dropbox

            self._client_instance = dropbox.Dropbox(
                oauth2_access_token=self._access_token,
                max_retries_on_error=0,
                max_retries_on_rate_limit=0,
                timeout=self._timeout,
            )
        return self._client_instance

    def close(self) -> None:
        if self._client_instance is not None:
            self._client_instance.close()

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, operation: str) -> Iterator[None]:
        """Map SDK and HTTP exceptions to :class:`ApiError`."""
        import dropbox.exceptions
        import requests

        try:
            yield
        except dropbox.exceptions.ApiError as exc:
            summary = str(exc.error)
            raise ApiError(classify_api_error(exc.error), summary) from exc
        except dropbox.exceptions.RateLimitError as exc:
            raise ApiError(ErrorReason.RATE_LIMITED, f"too_many_requests: {exc.error}", retry_after=exc.backoff) from exc
        except dropbox.exceptions.InternalServerError as exc:
            raise ApiError(ErrorReason.TRANSIENT, f"internal server error {exc.status_code}") from exc
        except dropbox.exceptions.HttpError as exc:
            reason = ErrorReason.TRANSIENT if exc.status_code >= 500 else ErrorReason.OTHER
            raise ApiError(reason, f"http error {exc.status_code}: {exc.body}") from exc
        except dropbox.exceptions.DropboxException as exc:
            raise ApiError(ErrorReason.OTHER, f"{operation}: {exc}") from exc
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as exc:
            log.debug("%s: connection problem: %s", operation, exc)
            raise ApiError(ErrorReason.TRANSIENT, f"{operation}: {exc}") from exc

    # endregion

    # region: metadata and listing

    def get_metadata(self, path: str) -> Entry:
        with self._errors("get_metadata"):
            return convert_metadata(self._client.files_get_metadata(path))

    def _page(self, result: Any) -> ListFolderPage:
        return ListFolderPage(
            entries=tuple(convert_metadata(md) for md in result.entries),
            cursor=result.cursor,
            has_more=result.has_more,
        )

    def list_folder(self, path: str) -> ListFolderPage:
        with self._errors("list_folder"):
            return self._page(self._client.files_list_folder(path))

    def list_folder_continue(self, cursor: str) -> ListFolderPage:
        with self._errors("list_folder_continue"):
            return self._page(self._client.files_list_folder_continue(cursor))

    # endregion

    # region: mutations

    def create_folder(self, path: str) -> FolderEntry:
        with self._errors("create_folder"):
            result = self._client.files_create_folder_v2(path)
        entry = convert_metadata(result.metadata)
        if not isinstance(entry, FolderEntry):
            raise ApiError(ErrorReason.OTHER, f"create_folder returned {type(result.metadata).__name__}")
        return entry

    def delete(self, path: str) -> Entry:
        with self._errors("delete"):
            return convert_metadata(self._client.files_delete_v2(path).metadata)

    def copy(self, from_path: str, to_path: str) -> Entry:
        with self._errors("copy"):
            return convert_metadata(self._client.files_copy_v2(from_path, to_path).metadata)

    def move(self, from_path: str, to_path: str) -> Entry:
        with self._errors("move"):
            return convert_metadata(self._client.files_move_v2(from_path, to_path).metadata)

    # endregion

    # region: content

    def download(self, path: str, headers: Optional[Mapping[str, str]] = None) -> tuple[FileEntry, BinaryIO]:
        client = self._client.clone(headers=dict(headers)) if headers else self._client
        with self._errors("download"):
            md, response = client.files_download(path)
        entry = convert_metadata(md)
        if not isinstance(entry, FileEntry):
            response.close()
            raise ApiError(ErrorReason.NOT_FILE, "path/not_file/")
        response.raw.decode_content = True
        return entry, response.raw

    def _commit_info(self, commit: CommitInfo) -> Any:
        import dropbox

        mode = dropbox.files.WriteMode.overwrite if commit.mode is WriteMode.OVERWRITE else dropbox.files.WriteMode.add
        return dropbox.files.CommitInfo(
            path=commit.path,
            mode=mode,
            client_modified=_naive_utc(commit.client_modified),
            mute=True,
        )

    def _file_entry(self, md: Any) -> FileEntry:
        entry = convert_metadata(md)
        if not isinstance(entry, FileEntry):
            raise ApiError(ErrorReason.OTHER, f"upload returned {type(md).__name__}")
        return entry

    def upload(self, commit: CommitInfo, data: bytes) -> FileEntry:
        info = self._commit_info(commit)
        with self._errors("upload"):
            md = self._client.files_upload(
                data, info.path, mode=info.mode, client_modified=info.client_modified, mute=True
            )
        return self._file_entry(md)

    def upload_session_start(self, data: bytes) -> str:
        with self._errors("upload_session_start"):
            return self._client.files_upload_session_start(data).session_id

    def _cursor(self, cursor: UploadSessionCursor) -> Any:
        import dropbox

        return dropbox.files.UploadSessionCursor(session_id=cursor.session_id, offset=cursor.offset)

    def upload_session_append(self, cursor: UploadSessionCursor, data: bytes) -> None:
        with self._errors("upload_session_append"):
            self._client.files_upload_session_append_v2(data, self._cursor(cursor))

    def upload_session_finish(self, cursor: UploadSessionCursor, commit: CommitInfo, data: bytes) -> FileEntry:
        with self._errors("upload_session_finish"):
            md = self._client.files_upload_session_finish(data, self._cursor(cursor), self._commit_info(commit))
        return self._file_entry(md)

    # endregion
