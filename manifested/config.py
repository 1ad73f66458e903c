"""Runtime settings and their environment/CLI merge order."""

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

MANIFEST_FILE_NAME = ".manifest"
DEFAULT_ALGORITHM = "sha256"
DEFAULT_CHUNK_SIZE = 32 * 1024
HASH_ALGORITHMS = ("sha256", "xxh64")

ENV_PREFIX = "MANIFESTED_"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    """Settings shared by every manifest operation."""
    manifest_name: str = MANIFEST_FILE_NAME
    algorithm: str = DEFAULT_ALGORITHM
    chunk_size: int = DEFAULT_CHUNK_SIZE
    progress: bool = False

    def __post_init__(self):
        if not self.manifest_name or "/" in self.manifest_name or "\\" in self.manifest_name:
            raise ValueError(f"Invalid manifest file name: {self.manifest_name!r}")
        if self.algorithm not in HASH_ALGORITHMS:
            raise ValueError(
                f"Unknown hash algorithm {self.algorithm!r} "
                f"(expected one of: {', '.join(HASH_ALGORITHMS)})"
            )
        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive: {self.chunk_size}")


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _from_environ(environ: Mapping[str, str]) -> dict:
    values = {}
    if f"{ENV_PREFIX}MANIFEST_NAME" in environ:
        values["manifest_name"] = environ[f"{ENV_PREFIX}MANIFEST_NAME"]
    if f"{ENV_PREFIX}HASH" in environ:
        values["algorithm"] = environ[f"{ENV_PREFIX}HASH"].strip().lower()
    if f"{ENV_PREFIX}CHUNK_SIZE" in environ:
        raw = environ[f"{ENV_PREFIX}CHUNK_SIZE"]
        try:
            values["chunk_size"] = int(raw)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}CHUNK_SIZE must be an integer, got {raw!r}") from None
    if f"{ENV_PREFIX}PROGRESS" in environ:
        values["progress"] = _parse_bool(f"{ENV_PREFIX}PROGRESS", environ[f"{ENV_PREFIX}PROGRESS"])
    return values


def load_settings(environ: Optional[Mapping[str, str]] = None, **overrides) -> Settings:
    """
    Build Settings from defaults, then environment variables, then overrides.

    Args:
        environ: Environment mapping to read (defaults to os.environ)
        **overrides: Explicit values (e.g. from CLI flags); None means "not set"

    Returns:
        The merged, validated Settings
    """
    if environ is None:
        environ = os.environ

    known = {f.name for f in fields(Settings)}
    unknown = set(overrides) - known
    if unknown:
        raise TypeError(f"Unknown settings: {', '.join(sorted(unknown))}")

    settings = Settings(**_from_environ(environ))
    explicit = {key: value for key, value in overrides.items() if value is not None}
    return replace(settings, **explicit) if explicit else settings
