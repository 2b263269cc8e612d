"""Registry — named stores over shared, lazily opened transports."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from dropbox_store._config import RegistryConfig
from dropbox_store._store import DropboxStore

if TYPE_CHECKING:
    from types import TracebackType

    from dropbox_store._config import StoreProfile, TransportConfig
    from dropbox_store._transport import Transport

log = logging.getLogger(__name__)

TransportFactory = Callable[..., "Transport"]

# Transport type name -> factory called with the transport's options.
_TRANSPORT_FACTORIES: dict[str, TransportFactory] = {}


def register_transport(type_name: str, factory: TransportFactory) -> None:
    """Make ``factory`` available as transport type ``type_name``, replacing any previous one.

    :param type_name: The ``type`` used in :class:`TransportConfig` (e.g. ``"memory"``).
    :param factory: Called with the transport's ``options`` as keyword arguments.
    :raises ValueError: If ``type_name`` is empty.
    """
    if not type_name:
        raise ValueError("Transport type name must not be empty")
    _TRANSPORT_FACTORIES[type_name] = factory


def _register_builtin_transports() -> None:
    from dropbox_store.transports._memory import MemoryTransport
    from dropbox_store.transports._sdk import DropboxSDKTransport

    # Built-ins never shadow a factory registered under the same name.
    _TRANSPORT_FACTORIES.setdefault("memory", MemoryTransport)
    _TRANSPORT_FACTORIES.setdefault("dropbox", DropboxSDKTransport)


def _open_transport(name: str, cfg: TransportConfig) -> Transport:
    factory = _TRANSPORT_FACTORIES.get(cfg.type)
    if factory is None:
        raise ValueError(f"Unknown transport type '{cfg.type}'. Registered types: {sorted(_TRANSPORT_FACTORIES)}")
    try:
        transport = factory(**cfg.options)
    except TypeError as exc:
        raise ValueError(
            f"Invalid options for transport '{name}' (type={cfg.type!r}): {exc}. "
            f"Provided options: {sorted(cfg.options)}"
        ) from exc
    log.debug("Opened transport %r of type %r", name, cfg.type)
    return transport


class Registry:
    """Hands out :class:`DropboxStore` instances by profile name.

    A transport is opened the first time a store needs it and is then shared by
    every store whose profile names it. Objects can be copied or moved
    server-side between such stores; between stores on different transports
    the store raises :class:`CrossStoreOperation` instead.

    Stores are built once per name, so the root lookup made at construction
    happens only once. Close the registry rather than the stores it hands out:
    closing a store closes the transport it shares.

    :param config: Optional configuration. Validates immediately.
    :raises ValueError: If config is invalid.
    """

    def __init__(self, config: RegistryConfig | None = None) -> None:
        _register_builtin_transports()
        self._config = config or RegistryConfig()
        self._config.validate()
        self._transports: dict[str, Transport] = {}
        self._stores: dict[str, DropboxStore] = {}

    def __repr__(self) -> str:
        return f"Registry(stores={sorted(self._config.stores)!r})"

    def get_store(self, name: str) -> DropboxStore:
        """Return the store for a profile, building it on first use.

        :param name: The store profile name.
        :raises KeyError: If no store profile with this name exists.
        :raises ValueError: If the profile's transport cannot be opened.
        """
        store = self._stores.get(name)
        if store is not None:
            return store
        profile = self._profile(name)
        store = DropboxStore(self._transport(profile.transport), profile.to_store_config(name))
        self._stores[name] = store
        return store

    def shares_transport(self, first: str, second: str) -> bool:
        """Whether two store profiles use the same transport, enabling server-side copy and move between them.

        :raises KeyError: If either profile does not exist.
        """
        return self._profile(first).transport == self._profile(second).transport

    def _profile(self, name: str) -> StoreProfile:
        try:
            return self._config.stores[name]
        except KeyError:
            raise KeyError(f"Unknown store '{name}'. Available stores: {sorted(self._config.stores)}") from None

    def _transport(self, name: str) -> Transport:
        transport = self._transports.get(name)
        if transport is None:
            transport = _open_transport(name, self._config.transports[name])
            self._transports[name] = transport
        return transport

    def close(self) -> None:
        """Close every opened transport and forget the stores built on them."""
        for name, transport in self._transports.items():
            log.debug("Closing transport %r", name)
            transport.close()
        self._transports.clear()
        self._stores.clear()

    def __enter__(self) -> Registry:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
