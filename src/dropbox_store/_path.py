"""PathScope — mapping between store-relative paths and the service's case-insensitive namespace.

The service reports a "display" path whose casing is only reliable in its final
component. Casing of intermediate components returned by metadata or listing
calls is not authoritative, so nothing here renames or reconciles local state
from it. Callers that need correct casing list one directory level at a time.
"""

from __future__ import annotations

import posixpath

from dropbox_store._errors import InvalidPath

SEPARATOR = "/"


def normalize_relative(raw: str) -> str:
    """Normalize a store-relative path.

    Backslashes become separators, empty and ``.`` segments are dropped, and
    leading/trailing separators are removed. An empty result addresses the
    store root.

    :raises InvalidPath: If the path contains a null byte or a ``..`` segment.
    """
    if "\0" in raw:
        raise InvalidPath("Path contains null byte", path=raw)
    parts: list[str] = []
    for segment in raw.replace("\\", SEPARATOR).split(SEPARATOR):
        if segment in ("", "."):
            continue
        if segment == "..":
            raise InvalidPath("Path contains '..' segment", path=raw)
        parts.append(segment)
    return SEPARATOR.join(parts)


def strip(path: str, root: str) -> str:
    """Strip ``root`` from the front of ``path``, comparing case-insensitively.

    ``root`` is treated as a scope prefix: it gains a leading and a trailing
    separator if missing, and an empty root means the namespace root ``/``.
    The remainder keeps whatever casing ``path`` had.

    :raises InvalidPath: If ``path`` is not under ``root``.
    """
    if root:
        if not root.startswith(SEPARATOR):
            root = SEPARATOR + root
        if not root.endswith(SEPARATOR):
            root += SEPARATOR
    else:
        root = SEPARATOR
    if not path.lower().startswith(root.lower()):
        raise InvalidPath(f"Path {path!r} is not under root {root!r}", path=path)
    return path[len(root) :]


class PathScope:
    """Confines paths to a configured root within the remote namespace.

    :param root: Root path as configured. Leading and trailing separators are ignored.
    """

    __slots__ = ("root", "slash_root", "slash_root_slash")

    def __init__(self, root: str) -> None:
        self.root = root.strip(SEPARATOR)
        lower = self.root.lower()
        #: Lower-cased root with a leading separator, ``/`` for the namespace root.
        self.slash_root = SEPARATOR + lower
        #: ``slash_root`` with exactly one trailing separator.
        self.slash_root_slash = self.slash_root + SEPARATOR if lower else self.slash_root

    def __repr__(self) -> str:
        return f"PathScope(root={self.root!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PathScope):
            return self.slash_root == other.slash_root
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.slash_root)

    @property
    def is_namespace_root(self) -> bool:
        """Whether this scope covers the whole namespace."""
        return self.slash_root == SEPARATOR

    def strip_root(self, path: str) -> str:
        """Return ``path`` relative to this scope. The scope root itself is ``""``.

        :raises InvalidPath: If ``path`` is not under the scope root.
        """
        if path.lower() == self.slash_root:
            return ""
        return strip(path, self.slash_root_slash)

    def resolve(self, relative: str) -> str:
        """Return the absolute path for a store-relative path.

        The root and ``relative`` are joined with exactly one separator. The
        empty relative path resolves to the scope root itself.
        """
        rel = normalize_relative(relative)
        if not rel:
            return self.slash_root
        return self.slash_root_slash + rel

    def contains(self, path: str) -> bool:
        """Whether an absolute path lies under this scope (case-insensitive)."""
        try:
            self.strip_root(path)
        except InvalidPath:
            return False
        return True

    @staticmethod
    def api_path(path: str) -> str:
        """Address a path for the listing call, where the namespace root is ``""``."""
        return "" if path == SEPARATOR else path

    def parent(self) -> PathScope:
        """The scope one level up, or the namespace root."""
        return PathScope(posixpath.dirname(self.root))

    def leaf(self) -> str:
        """Final component of the configured root."""
        return posixpath.basename(self.root)
