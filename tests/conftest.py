"""Shared test fixtures and marker registration."""

from __future__ import annotations

import pytest

from dropbox_store._config import PacerConfig, StoreConfig
from dropbox_store._pacer import Pacer
from dropbox_store._store import DropboxStore
from dropbox_store.transports._memory import MemoryTransport


def pytest_configure(config: object) -> None:
    """Register custom markers."""
    if isinstance(config, pytest.Config):
        config.addinivalue_line("markers", "sdk: requires the dropbox SDK")


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def pacer(clock: FakeClock) -> Pacer:
    return Pacer(PacerConfig(), sleep=clock.sleep, clock=clock)


@pytest.fixture
def transport() -> MemoryTransport:
    return MemoryTransport()


@pytest.fixture
def store(transport: MemoryTransport, pacer: Pacer) -> DropboxStore:
    return DropboxStore(transport, StoreConfig(name="test", root_path="data"), pacer=pacer)


@pytest.fixture
def make_store(transport: MemoryTransport, pacer: Pacer):  # type: ignore[no-untyped-def]
    """Build further stores on the same transport."""

    def _make(root_path: str = "", name: str = "test", **kwargs: object) -> DropboxStore:
        return DropboxStore(transport, StoreConfig(name=name, root_path=root_path, **kwargs), pacer=pacer)  # type: ignore[arg-type]

    return _make
