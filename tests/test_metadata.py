"""Tests for LazyMetadata."""

from __future__ import annotations

import threading
from datetime import datetime, timezone

import pytest

from dropbox_store._metadata import LazyMetadata, MetadataState
from dropbox_store._models import Metadata

_MD = Metadata(size=3, modified_at=datetime(2024, 1, 1, tzinfo=timezone.utc), content_hash="abc")


class TestLazyMetadata:
    def test_unloaded_until_first_get(self) -> None:
        cell = LazyMetadata()
        assert cell.state is MetadataState.UNLOADED
        assert cell.peek() is None
        assert cell.get(lambda: _MD) == _MD
        assert cell.state is MetadataState.LOADED

    def test_known_value_starts_loaded(self) -> None:
        cell = LazyMetadata(_MD)
        assert cell.state is MetadataState.LOADED

        def loader() -> Metadata:
            raise AssertionError("must not load")

        assert cell.get(loader) is _MD

    def test_loader_runs_once(self) -> None:
        calls = []

        def loader() -> Metadata:
            calls.append(1)
            return _MD

        cell = LazyMetadata()
        cell.get(loader)
        cell.get(loader)
        assert len(calls) == 1

    def test_failed_load_is_recorded_and_retried(self) -> None:
        cell = LazyMetadata()

        def failing() -> Metadata:
            raise OSError("offline")

        with pytest.raises(OSError):
            cell.get(failing)
        assert cell.state is MetadataState.FAILED
        assert isinstance(cell.error, OSError)

        assert cell.get(lambda: _MD) == _MD
        assert cell.state is MetadataState.LOADED
        assert cell.error is None

    def test_set_replaces_value(self) -> None:
        cell = LazyMetadata(_MD)
        newer = Metadata(size=9, modified_at=_MD.modified_at, content_hash="def")
        cell.set(newer)
        assert cell.peek() == newer

    def test_concurrent_first_access_loads_once(self) -> None:
        calls = []
        gate = threading.Event()

        def loader() -> Metadata:
            calls.append(1)
            gate.wait(1)
            return _MD

        cell = LazyMetadata()
        results: list[Metadata] = []
        threads = [threading.Thread(target=lambda: results.append(cell.get(loader))) for _ in range(5)]
        for t in threads:
            t.start()
        gate.set()
        for t in threads:
            t.join()
        assert len(calls) == 1
        assert results == [_MD] * 5
