"""Integrity verification of a directory against its manifest."""

import logging
import os
from pathlib import Path
from typing import Iterable

from tqdm import tqdm

from .config import DEFAULT_ALGORITHM, DEFAULT_CHUNK_SIZE
from .errors import BrokenSymlinkError
from .models import ManifestDiff, ManifestEntry, ManifestState
from .scanner import compute_file_hash, long_path, resolve_real_entry

logger = logging.getLogger(__name__)

# Checksum recorded for files whose size already differs. It never matches a
# real digest, so anything applying the result recopies the file.
UNKNOWN_CHECKSUM = ""


def verify_entry(
    folder_path: Path,
    entry: ManifestEntry,
    algorithm: str = DEFAULT_ALGORITHM,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> ManifestDiff:
    """Check one manifest entry against the file on disk."""
    file_path = folder_path / entry.file_path

    if not os.path.exists(long_path(file_path)):
        return ManifestDiff(ManifestState.REMOVED, entry, None)

    try:
        real = resolve_real_entry(file_path)
    except BrokenSymlinkError:
        logger.debug("Broken symlink treated as missing: %s", file_path)
        return ManifestDiff(ManifestState.REMOVED, entry, None)

    if real.size != entry.file_size:
        current = ManifestEntry(entry.file_path, real.size, UNKNOWN_CHECKSUM)
        return ManifestDiff(ManifestState.CHANGED, entry, current)

    file_hash = compute_file_hash(file_path, chunk_size=chunk_size, algorithm=algorithm)
    if file_hash.lower() != entry.checksum_key:
        current = ManifestEntry(entry.file_path, real.size, file_hash)
        return ManifestDiff(ManifestState.CHANGED, entry, current)

    return ManifestDiff(ManifestState.UNCHANGED, entry, entry)


def verify_directory(
    folder_path: Path,
    manifest: Iterable[ManifestEntry],
    *,
    algorithm: str = DEFAULT_ALGORITHM,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    progress: bool = False,
    desc: str = "Verifying"
) -> list[ManifestDiff]:
    """
    Verify a folder against a manifest without a second manifest.

    Records come back in manifest order and are only ever unchanged,
    changed or removed. A file whose size differs is reported as changed
    without being hashed; its new entry carries an empty checksum.
    """
    folder_path = Path(folder_path)
    entries = list(manifest)
    result = []

    with tqdm(entries, desc=desc, unit="file", disable=not progress) as pbar:
        for entry in pbar:
            result.append(verify_entry(folder_path, entry, algorithm, chunk_size))

    return result
