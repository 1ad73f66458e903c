"""Data models for manifests and manifest diffs."""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath, PureWindowsPath
from typing import Optional

from .errors import InvalidPathError

PATH_SEPARATOR = "/"


class ManifestState(Enum):
    """Classification of a single diff record."""
    UNCHANGED = "unchanged"
    MOVED = "moved"
    CHANGED = "changed"
    ADDED = "added"
    REMOVED = "removed"

    def __str__(self) -> str:
        return self.value


def normalize_path(file_path: str) -> str:
    """
    Convert a relative path to the manifest's forward-slash form and validate it.

    Raises InvalidPathError for absolute paths and for any ``..`` segment.
    """
    for sep in (os.sep, os.altsep):
        if sep and sep != PATH_SEPARATOR:
            file_path = file_path.replace(sep, PATH_SEPARATOR)

    if not file_path:
        raise InvalidPathError(file_path, "Empty paths are forbidden")
    if PurePosixPath(file_path).is_absolute() or PureWindowsPath(file_path).is_absolute():
        raise InvalidPathError(file_path, "Absolute paths are forbidden")
    if ".." in file_path.split(PATH_SEPARATOR):
        raise InvalidPathError(file_path, "Parent directory traversal is forbidden")

    return file_path


@dataclass(frozen=True, eq=False)
class ManifestEntry:
    """A tracked file: relative path, size in bytes and content checksum."""
    file_path: str
    file_size: int
    checksum: str

    def __post_init__(self):
        object.__setattr__(self, "file_path", normalize_path(self.file_path))
        if self.file_size < 0:
            raise ValueError(f"File size must be non-negative: {self.file_size}")

    @property
    def checksum_key(self) -> str:
        """Checksum in the form used for comparisons."""
        return self.checksum.lower()

    def same_checksum(self, other: "ManifestEntry") -> bool:
        return self.checksum_key == other.checksum_key

    def __eq__(self, other) -> bool:
        if not isinstance(other, ManifestEntry):
            return NotImplemented
        return (
            self.file_path == other.file_path
            and self.file_size == other.file_size
            and self.same_checksum(other)
        )

    def __hash__(self) -> int:
        return hash((self.file_path, self.file_size, self.checksum_key))


@dataclass
class ManifestDiff:
    """One change record between a previous and a current manifest entry."""
    state: ManifestState
    last: Optional[ManifestEntry] = None
    current: Optional[ManifestEntry] = None

    @property
    def entry(self) -> ManifestEntry:
        """The entry a report should name: current, or last for removals."""
        return self.current if self.current is not None else self.last

    def describe(self) -> str:
        """Render the record as a single human-readable line."""
        if self.state is ManifestState.MOVED:
            return f'{self.state}: "{self.last.file_path}" -> "{self.current.file_path}"'
        return f'{self.state}: "{self.entry.file_path}"'


@dataclass(frozen=True)
class RealEntry:
    """Metadata of the real file behind a path, after following a symlink."""
    path: str
    size: int
    is_file: bool
