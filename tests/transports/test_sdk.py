"""Tests for DropboxSDKTransport's conversions and error mapping, using a mocked client."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

dropbox = pytest.importorskip("dropbox", reason="dropbox SDK not installed")
requests = pytest.importorskip("requests", reason="requests not installed")

from dropbox_store._models import CommitInfo, FileEntry, FolderEntry, OtherEntry, UploadSessionCursor  # noqa: E402
from dropbox_store._transport import ApiError, ErrorReason  # noqa: E402
from dropbox_store.transports._sdk import DropboxSDKTransport, classify_api_error, convert_metadata  # noqa: E402

pytestmark = pytest.mark.sdk

_NAIVE = datetime(2024, 5, 1, 12, 0, 0)
_WHEN = _NAIVE.replace(tzinfo=timezone.utc)
_HASH = "a" * 64


def _file_md(path: str = "/Docs/a.txt") -> object:
    return dropbox.files.FileMetadata(
        name=path.rsplit("/", 1)[-1],
        id="id:abc",
        client_modified=_NAIVE,
        server_modified=_NAIVE,
        rev="0123456789abcdef",
        size=3,
        path_lower=path.lower(),
        path_display=path,
        content_hash=_HASH,
    )


def _folder_md(path: str = "/Docs") -> object:
    return dropbox.files.FolderMetadata(
        name=path.rsplit("/", 1)[-1], id="id:def", path_lower=path.lower(), path_display=path
    )


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def transport(client: MagicMock) -> DropboxSDKTransport:
    return DropboxSDKTransport(client)


class TestConstruction:
    def test_needs_client_or_token(self) -> None:
        with pytest.raises(ValueError):
            DropboxSDKTransport()

    def test_name(self, transport: DropboxSDKTransport) -> None:
        assert transport.name == "dropbox"

    def test_close(self, transport: DropboxSDKTransport, client: MagicMock) -> None:
        transport.close()
        client.close.assert_called_once()


class TestConvertMetadata:
    def test_file(self) -> None:
        entry = convert_metadata(_file_md())
        assert entry == FileEntry(
            path_display="/Docs/a.txt",
            path_lower="/docs/a.txt",
            size=3,
            client_modified=_WHEN,
            content_hash=_HASH,
            server_modified=_WHEN,
            rev="0123456789abcdef",
        )

    def test_folder(self) -> None:
        assert convert_metadata(_folder_md()) == FolderEntry(path_display="/Docs", path_lower="/docs")

    def test_deleted(self) -> None:
        md = dropbox.files.DeletedMetadata(name="gone", path_lower="/gone", path_display="/gone")
        entry = convert_metadata(md)
        assert isinstance(entry, OtherEntry)
        assert entry.kind == "DeletedMetadata"


class TestClassify:
    def test_not_found(self) -> None:
        error = dropbox.files.GetMetadataError.path(dropbox.files.LookupError.not_found)
        assert classify_api_error(error) is ErrorReason.NOT_FOUND

    def test_not_folder(self) -> None:
        error = dropbox.files.ListFolderError.path(dropbox.files.LookupError.not_folder)
        assert classify_api_error(error) is ErrorReason.NOT_FOLDER

    def test_restricted_content(self) -> None:
        error = dropbox.files.DownloadError.path(dropbox.files.LookupError.restricted_content)
        assert classify_api_error(error) is ErrorReason.RESTRICTED_CONTENT

    def test_relocation_source_missing(self) -> None:
        error = dropbox.files.RelocationError.from_lookup(dropbox.files.LookupError.not_found)
        assert classify_api_error(error) is ErrorReason.NOT_FOUND

    def test_relocation_conflict(self) -> None:
        conflict = dropbox.files.WriteError.conflict(dropbox.files.WriteConflictError.file)
        error = dropbox.files.RelocationError.to(conflict)
        assert classify_api_error(error) is ErrorReason.CONFLICT

    def test_too_many_write_operations(self) -> None:
        error = dropbox.files.DeleteError.too_many_write_operations
        assert classify_api_error(error) is ErrorReason.RATE_LIMITED


class TestErrorMapping:
    def test_api_error(self, transport: DropboxSDKTransport, client: MagicMock) -> None:
        error = dropbox.files.GetMetadataError.path(dropbox.files.LookupError.not_found)
        client.files_get_metadata.side_effect = dropbox.exceptions.ApiError("req", error, None, None)
        with pytest.raises(ApiError) as exc_info:
            transport.get_metadata("/missing")
        assert exc_info.value.reason is ErrorReason.NOT_FOUND
        assert isinstance(exc_info.value.__cause__, dropbox.exceptions.ApiError)

    def test_rate_limit(self, transport: DropboxSDKTransport, client: MagicMock) -> None:
        client.files_get_metadata.side_effect = dropbox.exceptions.RateLimitError("req", None, 7)
        with pytest.raises(ApiError) as exc_info:
            transport.get_metadata("/x")
        assert exc_info.value.reason is ErrorReason.RATE_LIMITED
        assert exc_info.value.retry_after == 7

    def test_internal_server_error(self, transport: DropboxSDKTransport, client: MagicMock) -> None:
        client.files_list_folder.side_effect = dropbox.exceptions.InternalServerError("req", 503, "down")
        with pytest.raises(ApiError) as exc_info:
            transport.list_folder("")
        assert exc_info.value.reason is ErrorReason.TRANSIENT

    def test_connection_error(self, transport: DropboxSDKTransport, client: MagicMock) -> None:
        client.files_delete_v2.side_effect = requests.exceptions.ConnectionError("reset")
        with pytest.raises(ApiError) as exc_info:
            transport.delete("/x")
        assert exc_info.value.reason is ErrorReason.TRANSIENT


class TestCalls:
    def test_list_folder(self, transport: DropboxSDKTransport, client: MagicMock) -> None:
        client.files_list_folder.return_value = dropbox.files.ListFolderResult(
            entries=[_file_md(), _folder_md("/Docs/Sub")], cursor="c1", has_more=True
        )
        page = transport.list_folder("/docs")
        client.files_list_folder.assert_called_once_with("/docs")
        assert page.cursor == "c1"
        assert page.has_more
        assert [type(e) for e in page.entries] == [FileEntry, FolderEntry]

    def test_download_with_range(self, transport: DropboxSDKTransport, client: MagicMock) -> None:
        ranged = client.clone.return_value
        response = MagicMock()
        ranged.files_download.return_value = (_file_md(), response)
        entry, stream = transport.download("/docs/a.txt", {"Range": "bytes=0-1"})
        client.clone.assert_called_once_with(headers={"Range": "bytes=0-1"})
        assert entry.size == 3
        assert stream is response.raw

    def test_upload(self, transport: DropboxSDKTransport, client: MagicMock) -> None:
        client.files_upload.return_value = _file_md()
        commit = CommitInfo(path="/Docs/a.txt", client_modified=_WHEN)
        entry = transport.upload(commit, b"abc")
        args, kwargs = client.files_upload.call_args
        assert args == (b"abc", "/Docs/a.txt")
        assert kwargs["mode"] == dropbox.files.WriteMode.overwrite
        assert kwargs["client_modified"] == _NAIVE
        assert entry.path_display == "/Docs/a.txt"

    def test_upload_session(self, transport: DropboxSDKTransport, client: MagicMock) -> None:
        client.files_upload_session_start.return_value = dropbox.files.UploadSessionStartResult(session_id="s1")
        client.files_upload_session_finish.return_value = _file_md()
        assert transport.upload_session_start(b"abc") == "s1"
        transport.upload_session_append(UploadSessionCursor(session_id="s1", offset=3), b"def")
        _, cursor = client.files_upload_session_append_v2.call_args[0]
        assert (cursor.session_id, cursor.offset) == ("s1", 3)
        entry = transport.upload_session_finish(
            UploadSessionCursor(session_id="s1", offset=6), CommitInfo(path="/Docs/a.txt", client_modified=_WHEN), b""
        )
        assert isinstance(entry, FileEntry)
