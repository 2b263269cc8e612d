"""Configuration model — immutable data containers describing transports, pacing and stores."""

from __future__ import annotations

import dataclasses
import re

MiB = 1024 * 1024

#: Largest chunk the service accepts in one upload request.
MAX_UPLOAD_CHUNK_SIZE = 150 * MiB

#: Chunks are sent from memory one at a time, so this can be set large.
DEFAULT_UPLOAD_CHUNK_SIZE = 128 * MiB

#: File names the service ignores (hidden OS and service marker files).
DEFAULT_IGNORED_FILES = r"(^|/)(desktop\.ini|thumbs\.db|\.ds_store|icon\r|\.dropbox|\.dropbox.attr)$"


@dataclasses.dataclass(frozen=True)
class PacerConfig:
    """Pacing and retry parameters for one store.

    :param min_sleep: Smallest delay between calls, in seconds.
    :param max_sleep: Largest delay between calls, in seconds.
    :param decay_constant: Bigger values decay the delay more slowly after successes.
    :param retries: Attempts per retryable call, including the first.
    """

    min_sleep: float = 0.01
    max_sleep: float = 2.0
    decay_constant: int = 2
    retries: int = 10

    def validate(self) -> None:
        """Check the parameters are consistent.

        :raises ValueError: If a parameter is out of range.
        """
        if self.min_sleep <= 0:
            raise ValueError(f"min_sleep must be positive, got {self.min_sleep!r}")
        if self.max_sleep < self.min_sleep:
            raise ValueError(f"max_sleep ({self.max_sleep!r}) must not be below min_sleep ({self.min_sleep!r})")
        if self.decay_constant < 1:
            raise ValueError(f"decay_constant must be at least 1, got {self.decay_constant!r}")
        if self.retries < 1:
            raise ValueError(f"retries must be at least 1, got {self.retries!r}")

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> PacerConfig:
        """Construct from a plain dict. Unknown keys raise ``TypeError``."""
        return cls(**data)  # type: ignore[arg-type]


@dataclasses.dataclass(frozen=True)
class StoreConfig:
    """Describes one store bound to a root of the remote namespace.

    :param name: Name of the store, used in messages and errors.
    :param root_path: Root path within the namespace (may be empty).
    :param chunk_size: Upload chunk-size ceiling in bytes.
    :param ignored_files: Regular expression of paths never uploaded (case-insensitive).
    :param pacer: Pacing and retry parameters.
    """

    name: str
    root_path: str = ""
    chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE
    ignored_files: str = DEFAULT_IGNORED_FILES
    pacer: PacerConfig = dataclasses.field(default_factory=PacerConfig)

    def validate(self) -> None:
        """Fail fast on settings the service cannot honour.

        :raises ValueError: If the chunk size is out of range or a pattern is invalid.
        """
        if self.chunk_size <= 0:
            raise ValueError(f"chunk size must be positive, got {self.chunk_size!r}")
        if self.chunk_size > MAX_UPLOAD_CHUNK_SIZE:
            raise ValueError(
                f"chunk size too big: {self.chunk_size} bytes, must be <= {MAX_UPLOAD_CHUNK_SIZE} bytes "
                f"({MAX_UPLOAD_CHUNK_SIZE // MiB} MiB)"
            )
        try:
            re.compile(self.ignored_files)
        except re.error as exc:
            raise ValueError(f"Invalid ignored_files pattern {self.ignored_files!r}: {exc}") from exc
        self.pacer.validate()

    @property
    def ignored_files_re(self) -> re.Pattern[str]:
        """The compiled, case-insensitive ignored-files pattern."""
        return re.compile(self.ignored_files, re.IGNORECASE)


@dataclasses.dataclass(frozen=True)
class TransportConfig:
    """Describes a transport instance.

    :param type: Transport type identifier (e.g. ``"memory"``, ``"dropbox"``).
    :param options: Transport-specific constructor options.
    """

    type: str
    options: dict[str, object] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class StoreProfile:
    """A named store: which transport it uses and how it is configured.

    :param transport: Name of the transport config to use.
    :param root_path: Root path within the namespace.
    :param chunk_size: Upload chunk-size ceiling in bytes.
    :param ignored_files: Regular expression of paths never uploaded.
    :param pacer: Pacing and retry parameters.
    """

    transport: str
    root_path: str = ""
    chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE
    ignored_files: str = DEFAULT_IGNORED_FILES
    pacer: PacerConfig = dataclasses.field(default_factory=PacerConfig)

    def to_store_config(self, name: str) -> StoreConfig:
        return StoreConfig(
            name=name,
            root_path=self.root_path,
            chunk_size=self.chunk_size,
            ignored_files=self.ignored_files,
            pacer=self.pacer,
        )


@dataclasses.dataclass(frozen=True)
class RegistryConfig:
    """Top-level configuration container.

    :param transports: Mapping of transport names to their configs.
    :param stores: Mapping of store names to their profiles.
    """

    transports: dict[str, TransportConfig] = dataclasses.field(default_factory=dict)
    stores: dict[str, StoreProfile] = dataclasses.field(default_factory=dict)

    def validate(self) -> None:
        """Validate store profiles and their transport references.

        :raises ValueError: If a store references a missing transport or is misconfigured.
        """
        for store_name, profile in self.stores.items():
            if profile.transport not in self.transports:
                raise ValueError(
                    f"Store '{store_name}' references unknown transport '{profile.transport}'. "
                    f"Available transports: {sorted(self.transports.keys())}"
                )
            profile.to_store_config(store_name).validate()

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> RegistryConfig:
        """Construct from a plain dict (e.g. parsed TOML/JSON).

        :param data: Dict with ``transports`` and ``stores`` keys.
        """
        raw_transports = data.get("transports", {})
        raw_stores = data.get("stores", {})
        if not isinstance(raw_transports, dict) or not isinstance(raw_stores, dict):
            msg = "Expected 'transports' and 'stores' to be dicts"
            raise TypeError(msg)

        transports: dict[str, TransportConfig] = {}
        for name, cfg in raw_transports.items():
            if not isinstance(cfg, dict):
                msg = f"Transport config for '{name}' must be a dict"
                raise TypeError(msg)
            transports[str(name)] = TransportConfig(type=str(cfg["type"]), options=dict(cfg.get("options", {})))

        stores: dict[str, StoreProfile] = {}
        for name, prof in raw_stores.items():
            if not isinstance(prof, dict):
                msg = f"Store profile for '{name}' must be a dict"
                raise TypeError(msg)
            stores[str(name)] = StoreProfile(
                transport=str(prof["transport"]),
                root_path=str(prof.get("root_path", "")),
                chunk_size=int(prof.get("chunk_size", DEFAULT_UPLOAD_CHUNK_SIZE)),
                ignored_files=str(prof.get("ignored_files", DEFAULT_IGNORED_FILES)),
                pacer=PacerConfig.from_dict(dict(prof.get("pacer", {}))),
            )

        return cls(transports=transports, stores=stores)
