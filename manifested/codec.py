"""Manifest text format: one ``path<TAB>size<TAB>checksum`` line per file."""

from pathlib import Path
from typing import Iterable

from .errors import MalformedManifestLineError
from .models import ManifestDiff, ManifestEntry, ManifestState

FIELD_SEPARATOR = "\t"
LINE_SEPARATOR = "\n"


def parse_line(line: str, line_number: int | None = None) -> ManifestEntry:
    """
    Parse a single manifest line.

    Raises:
        MalformedManifestLineError: Wrong field count or unparsable size
        InvalidPathError: Absolute path or parent traversal
    """
    fields = line.split(FIELD_SEPARATOR)
    if len(fields) != 3:
        raise MalformedManifestLineError(
            f"Manifest line must have 3 fields. Provided: {len(fields)}", line_number
        )

    # Paths may legitimately start or end with spaces
    file_path, size_field, checksum = fields[0], fields[1].strip(), fields[2].strip()
    if not (size_field.isascii() and size_field.isdigit()):
        raise MalformedManifestLineError(f"Invalid file size: {size_field!r}", line_number)

    return ManifestEntry(file_path, int(size_field), checksum)


def format_entry(entry: ManifestEntry) -> str:
    return FIELD_SEPARATOR.join((entry.file_path, str(entry.file_size), entry.checksum))


def loads(text: str) -> list[ManifestEntry]:
    """Parse a whole manifest document."""
    if not text:
        return []

    lines = text.split(LINE_SEPARATOR)
    if lines[-1] == "":
        lines.pop()

    return [
        parse_line(line.rstrip("\r"), line_number)
        for line_number, line in enumerate(lines, start=1)
    ]


def dumps(entries: Iterable[ManifestEntry]) -> str:
    return LINE_SEPARATOR.join(format_entry(entry) for entry in entries)


def load_manifest(file_path: Path) -> list[ManifestEntry]:
    """Read a manifest file."""
    with open(file_path, "r", encoding="utf-8", newline="") as f:
        return loads(f.read())


def save_manifest(entries: Iterable[ManifestEntry], file_path: Path) -> None:
    """Write a manifest file, replacing any existing one."""
    with open(file_path, "w", encoding="utf-8", newline="") as f:
        f.write(dumps(entries))


def manifest_from_diff(diff: Iterable[ManifestDiff]) -> list[ManifestEntry]:
    """Given a diff, produce the manifest of its non-removed entries."""
    return [record.current for record in diff if record.state is not ManifestState.REMOVED]
