"""Feature enum and FeatureSet — optional behaviours a store offers."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from dropbox_store._errors import FeatureNotSupported

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class Feature(enum.Enum):
    """Optional behaviours of a store."""

    CASE_INSENSITIVE = "case_insensitive"
    READ_MIME_TYPE = "read_mime_type"
    SERVER_SIDE_COPY = "server_side_copy"
    SERVER_SIDE_MOVE = "server_side_move"
    DIR_MOVE = "dir_move"
    PURGE = "purge"
    SET_MOD_TIME = "set_mod_time"


class FeatureSet:
    """Immutable set of features declared by a store.

    :param features: The supported features.
    """

    __slots__ = ("_features",)
    _features: frozenset[Feature]

    def __init__(self, features: Iterable[Feature]) -> None:
        object.__setattr__(self, "_features", frozenset(features))

    def supports(self, feature: Feature) -> bool:
        """Check whether a feature is supported."""
        return feature in self._features

    def require(self, feature: Feature, *, path: str | None = None, store: str | None = None) -> None:
        """Raise if a feature is not supported.

        :raises FeatureNotSupported: If the feature is missing.
        """
        if feature not in self._features:
            raise FeatureNotSupported(
                f"Feature '{feature.value}' is not supported",
                path=path,
                store=store,
                feature=feature.value,
            )

    def __contains__(self, feature: object) -> bool:
        return feature in self._features

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features)

    def __len__(self) -> int:
        return len(self._features)

    def __repr__(self) -> str:
        return f"FeatureSet({{{', '.join(sorted(f.name for f in self._features))}}})"

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("FeatureSet is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("FeatureSet is immutable")


DROPBOX_FEATURES = FeatureSet(
    {
        Feature.CASE_INSENSITIVE,
        Feature.READ_MIME_TYPE,
        Feature.SERVER_SIDE_COPY,
        Feature.SERVER_SIDE_MOVE,
        Feature.DIR_MOVE,
        Feature.PURGE,
    }
)
