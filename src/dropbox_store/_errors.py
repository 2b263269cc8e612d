"""Normalized error hierarchy for dropbox_store."""

from __future__ import annotations

from typing import ClassVar, Optional


class StoreError(Exception):
    """Base class for all dropbox_store errors.

    :param message: Human-readable error description.
    :param path: The path involved in the error, if any.
    :param store: The store name involved, if any.
    """

    #: Set on errors that must not be retried at any layer.
    no_retry: ClassVar[bool] = False

    def __init__(self, message: str = "", *, path: Optional[str] = None, store: Optional[str] = None) -> None:
        self.path = path
        self.store = store
        super().__init__(message)

    def _context(self) -> list[str]:
        parts = []
        if self.path is not None:
            parts.append(f"path={self.path!r}")
        if self.store is not None:
            parts.append(f"store={self.store!r}")
        return parts

    def __str__(self) -> str:
        parts = [super().__str__(), *self._context()]
        return " | ".join(parts) if len(parts) > 1 else parts[0]

    def __repr__(self) -> str:
        cls = type(self).__name__
        args = [repr(super().__str__()), *self._context()]
        return f"{cls}({', '.join(args)})"


class ObjectNotFound(StoreError):
    """Raised when an object does not exist."""


class DirectoryNotFound(StoreError):
    """Raised when a directory does not exist."""


class IsAFile(StoreError):
    """Raised when a path addresses a file where a directory was expected."""


class NotAFile(StoreError):
    """Raised when a path addresses a directory where a file was expected."""


class RestrictedContent(StoreError):
    """Raised when the service refuses content for policy reasons. Never retried."""

    no_retry = True


class RetriesExhausted(StoreError):
    """Raised when a retryable call kept failing until the retry budget ran out.

    The last transport error is available as ``__cause__``.
    """


class InvalidPath(StoreError):
    """Raised for malformed paths or paths outside the store root."""


class DirectoryExists(StoreError):
    """Raised when a directory move targets an existing directory."""


class DirectoryNotEmpty(StoreError):
    """Raised when removing a directory that still has entries."""


class CrossStoreOperation(StoreError):
    """Raised when a server-side operation is asked to span two stores.

    Callers are expected to fall back to a stream copy.

    :param operation: The rejected operation (``"copy"``, ``"move"``, ``"move_directory"``).
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        store: Optional[str] = None,
        operation: str = "",
    ) -> None:
        self.operation = operation
        super().__init__(message, path=path, store=store)

    def _context(self) -> list[str]:
        parts = super()._context()
        if self.operation:
            parts.append(f"operation={self.operation!r}")
        return parts


class FeatureNotSupported(StoreError):
    """Raised when an operation needs a feature the service does not offer.

    :param feature: The name of the missing feature.
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        store: Optional[str] = None,
        feature: str = "",
    ) -> None:
        self.feature = feature
        super().__init__(message, path=path, store=store)

    def _context(self) -> list[str]:
        parts = super()._context()
        if self.feature:
            parts.append(f"feature={self.feature!r}")
        return parts


class UploadFailed(StoreError):
    """Raised when a chunked upload fails part way through.

    The source reader has been partially consumed, so the upload must be restarted
    from a fresh reader.

    :param offset: Number of bytes the service had acknowledged before the failure.
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        store: Optional[str] = None,
        offset: int = 0,
    ) -> None:
        self.offset = offset
        super().__init__(message, path=path, store=store)

    def _context(self) -> list[str]:
        return [*super()._context(), f"offset={self.offset}"]


class RemoteError(StoreError):
    """Raised when a remote call fails for a reason with no more specific error.

    :param operation: The operation that failed (e.g. ``"list continue"``).
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        store: Optional[str] = None,
        operation: str = "",
    ) -> None:
        self.operation = operation
        super().__init__(message, path=path, store=store)

    def _context(self) -> list[str]:
        parts = super()._context()
        if self.operation:
            parts.append(f"operation={self.operation!r}")
        return parts


def is_no_retry(exc: BaseException | None) -> bool:
    """Return ``True`` if ``exc`` or anything in its cause chain forbids retrying."""
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        if getattr(exc, "no_retry", False):
            return True
        exc = exc.__cause__
    return False
