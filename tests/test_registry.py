"""Tests for the registry."""

from __future__ import annotations

import io
from datetime import datetime, timezone

import pytest

from dropbox_store._config import MAX_UPLOAD_CHUNK_SIZE, RegistryConfig, StoreProfile, TransportConfig
from dropbox_store._registry import Registry, register_transport
from dropbox_store._store import DropboxStore
from dropbox_store.transports._memory import MemoryTransport

_WHEN = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def _make_config() -> RegistryConfig:
    return RegistryConfig(
        transports={"mem": TransportConfig(type="memory", options={"page_size": 10})},
        stores={
            "main": StoreProfile(transport="mem", root_path="data"),
            "other": StoreProfile(transport="mem", root_path="other"),
        },
    )


class TestConstruction:
    def test_validates_on_construction(self) -> None:
        bad = RegistryConfig(transports={}, stores={"main": StoreProfile(transport="nonexistent")})
        with pytest.raises(ValueError, match="nonexistent"):
            Registry(bad)

    def test_empty(self) -> None:
        assert repr(Registry()) == "Registry(stores=[])"


class TestGetStore:
    def test_returns_store(self) -> None:
        store = Registry(_make_config()).get_store("main")
        assert isinstance(store, DropboxStore)
        assert store.name == "main"
        assert store.root == "data"
        assert isinstance(store.transport, MemoryTransport)

    def test_unknown_store(self) -> None:
        with pytest.raises(KeyError, match="nope"):
            Registry(_make_config()).get_store("nope")

    def test_stores_share_transport(self) -> None:
        reg = Registry(_make_config())
        assert reg.get_store("main").transport is reg.get_store("other").transport

    def test_unknown_transport_type(self) -> None:
        cfg = RegistryConfig(
            transports={"x": TransportConfig(type="carrier-pigeon")},
            stores={"main": StoreProfile(transport="x")},
        )
        with pytest.raises(ValueError, match="carrier-pigeon"):
            Registry(cfg).get_store("main")

    def test_invalid_options(self) -> None:
        cfg = RegistryConfig(
            transports={"mem": TransportConfig(type="memory", options={"bogus": 1})},
            stores={"main": StoreProfile(transport="mem")},
        )
        with pytest.raises(ValueError, match="bogus"):
            Registry(cfg).get_store("main")

    def test_dropbox_type_is_registered(self) -> None:
        cfg = RegistryConfig(
            transports={"dbx": TransportConfig(type="dropbox", options={})},
            stores={"main": StoreProfile(transport="dbx")},
        )
        with pytest.raises(ValueError, match="client or access_token"):
            Registry(cfg).get_store("main")


class TestCustomTransport:
    def test_register_transport(self) -> None:
        class TracingTransport(MemoryTransport):
            @property
            def name(self) -> str:
                return "tracing"

        register_transport("tracing", TracingTransport)
        cfg = RegistryConfig(
            transports={"t": TransportConfig(type="tracing")},
            stores={"main": StoreProfile(transport="t")},
        )
        assert Registry(cfg).get_store("main").transport.name == "tracing"


class TestLifecycle:
    def test_close_clears_transports(self) -> None:
        reg = Registry(_make_config())
        first = reg.get_store("main").transport
        reg.close()
        assert reg.get_store("main").transport is not first

    def test_context_manager(self) -> None:
        with Registry(_make_config()) as reg:
            reg.get_store("main")


class TestSharing:
    def test_store_built_once(self) -> None:
        reg = Registry(_make_config())
        assert reg.get_store("main") is reg.get_store("main")

    def test_root_looked_up_once(self) -> None:
        reg = Registry(_make_config())
        transport = reg.get_store("main").transport
        assert isinstance(transport, MemoryTransport)
        reg.get_store("main")
        assert transport.call_names() == ["get_metadata"]

    def test_shares_transport(self) -> None:
        cfg = RegistryConfig(
            transports={"a": TransportConfig(type="memory"), "b": TransportConfig(type="memory")},
            stores={
                "main": StoreProfile(transport="a", root_path="data"),
                "other": StoreProfile(transport="a", root_path="other"),
                "remote": StoreProfile(transport="b"),
            },
        )
        reg = Registry(cfg)
        assert reg.shares_transport("main", "other")
        assert not reg.shares_transport("main", "remote")
        with pytest.raises(KeyError, match="nope"):
            reg.shares_transport("main", "nope")

    def test_server_side_copy_between_shared_stores(self) -> None:
        reg = Registry(_make_config())
        main, other = reg.get_store("main"), reg.get_store("other")
        obj = main.put(io.BytesIO(b"abc"), "a.txt", _WHEN, 3)
        assert obj is not None
        copied = other.copy(obj, "b.txt")
        assert copied.size == 3
        assert "copy" in main.transport.call_names()  # type: ignore[attr-defined]

    def test_oversized_chunk_rejected_up_front(self) -> None:
        cfg = RegistryConfig(
            transports={"mem": TransportConfig(type="memory")},
            stores={"main": StoreProfile(transport="mem", chunk_size=MAX_UPLOAD_CHUNK_SIZE + 1)},
        )
        with pytest.raises(ValueError, match="chunk size too big"):
            Registry(cfg)

    def test_empty_transport_type_name(self) -> None:
        with pytest.raises(ValueError):
            register_transport("", MemoryTransport)
