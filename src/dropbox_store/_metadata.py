"""LazyMetadata — populate-once cache of an object's size, time and hash."""

from __future__ import annotations

import enum
import threading
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from dropbox_store._models import Metadata


class MetadataState(enum.Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    FAILED = "failed"


class LazyMetadata:
    """Holds metadata that is fetched on first access and never silently refreshed.

    The cell is ``UNLOADED`` until :meth:`get` or :meth:`set` populates it.
    Concurrent first accesses are serialized so the loader runs once and every
    caller sees the same value. A failed load leaves the cell ``FAILED`` with the
    error kept for inspection; the next :meth:`get` tries again.

    :param value: Known metadata, if the object was built from a listing or upload result.
    """

    __slots__ = ("_error", "_lock", "_state", "_value")

    def __init__(self, value: Optional[Metadata] = None) -> None:
        self._lock = threading.Lock()
        self._value = value
        self._error: Optional[BaseException] = None
        self._state = MetadataState.LOADED if value is not None else MetadataState.UNLOADED

    def __repr__(self) -> str:
        return f"LazyMetadata(state={self._state.value}, value={self._value!r})"

    @property
    def state(self) -> MetadataState:
        return self._state

    @property
    def error(self) -> Optional[BaseException]:
        """The error of the last failed load, if the cell is ``FAILED``."""
        return self._error

    def peek(self) -> Optional[Metadata]:
        """Return the cached value without loading."""
        return self._value

    def get(self, loader: Callable[[], Metadata]) -> Metadata:
        """Return the cached value, calling ``loader`` first if nothing is cached."""
        value = self._value
        if value is not None:
            return value
        with self._lock:
            if self._value is not None:
                return self._value
            try:
                loaded = loader()
            except Exception as exc:
                self._state = MetadataState.FAILED
                self._error = exc
                raise
            self._set_locked(loaded)
            return loaded

    def set(self, value: Metadata) -> None:
        """Replace the cached value, e.g. after an upload."""
        with self._lock:
            self._set_locked(value)

    def _set_locked(self, value: Metadata) -> None:
        self._value = value
        self._error = None
        self._state = MetadataState.LOADED
