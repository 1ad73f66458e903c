"""Directory scanning, symlink resolution and file hashing."""

import hashlib
import logging
import os
import stat
from pathlib import Path
from typing import Optional

import xxhash
from tqdm import tqdm

from .codec import save_manifest
from .config import (
    DEFAULT_ALGORITHM,
    DEFAULT_CHUNK_SIZE,
    MANIFEST_FILE_NAME,
    Settings,
)
from .errors import BrokenSymlinkError, DirectoryNotFoundError
from .models import ManifestEntry, RealEntry

logger = logging.getLogger(__name__)

_HASHERS = {
    "sha256": hashlib.sha256,
    "xxh64": xxhash.xxh64,
}


def long_path(path) -> str:
    """Convert path to long path format on Windows to handle paths > 260 chars."""
    path_str = os.path.abspath(path)
    if os.name == 'nt' and not path_str.startswith('\\\\?\\'):
        return '\\\\?\\' + path_str
    return path_str


def _raise_walk_error(error: OSError) -> None:
    raise error


def compute_file_hash(
    file_path: Path,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    algorithm: str = DEFAULT_ALGORITHM
) -> str:
    """Compute the lowercase hex digest of a file, reading it in chunks."""
    try:
        hasher = _HASHERS[algorithm]()
    except KeyError:
        raise ValueError(f"Unknown hash algorithm: {algorithm!r}") from None

    # Use long path format on Windows for paths > 260 chars
    with open(long_path(file_path), 'rb') as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)
    return hasher.hexdigest().lower()


def resolve_real_entry(path: Path) -> RealEntry:
    """
    Return metadata of the file behind ``path``, following one symlink hop.

    A path that is not a symlink describes itself. For a symlink, the link
    is read once and its target is stat'ed; any failure doing so raises
    BrokenSymlinkError, whatever the platform-specific cause was.
    """
    link_path = long_path(path)
    link_stat = os.lstat(link_path)

    if not stat.S_ISLNK(link_stat.st_mode):
        return RealEntry(str(path), link_stat.st_size, stat.S_ISREG(link_stat.st_mode))

    try:
        target = os.readlink(link_path)
        target_path = os.path.join(os.path.dirname(link_path), target)
        target_stat = os.stat(target_path)
    except FileNotFoundError as e:
        raise BrokenSymlinkError(path, "Symlinked file not found") from e
    except OSError as e:
        raise BrokenSymlinkError(path) from e

    return RealEntry(target_path, target_stat.st_size, stat.S_ISREG(target_stat.st_mode))


def get_file_entry(
    base_path: Path,
    relative_path: str,
    algorithm: str = DEFAULT_ALGORITHM,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> ManifestEntry:
    """Build the manifest entry for one file below ``base_path``."""
    abs_path = base_path / relative_path
    real = resolve_real_entry(abs_path)
    file_hash = compute_file_hash(abs_path, chunk_size=chunk_size, algorithm=algorithm)
    return ManifestEntry(relative_path, real.size, file_hash)


def list_files(folder_path: Path, manifest_name: str = MANIFEST_FILE_NAME) -> list[str]:
    """
    List the tracked files below a folder as POSIX-style relative paths.

    Files named ``manifest_name`` are skipped at every depth, as is anything
    that does not resolve to a regular file (e.g. dangling symlinks).
    Symlinked directories are followed, except where a link leads back to
    a directory already on the current path.
    """
    all_files = []
    # Real paths of each pending directory and its ancestors
    chains = {os.fspath(folder_path): frozenset([os.path.realpath(folder_path)])}

    for root, dirnames, filenames in os.walk(folder_path, onerror=_raise_walk_error, followlinks=True):
        chain = chains.pop(root)
        kept = []
        for dirname in sorted(dirnames):
            dir_path = os.path.join(root, dirname)
            real_dir = os.path.realpath(dir_path)
            if real_dir in chain:
                logger.warning("Skipping symlink loop at %s", dir_path)
                continue
            chains[dir_path] = chain | {real_dir}
            kept.append(dirname)
        dirnames[:] = kept

        for filename in sorted(filenames):
            if filename == manifest_name:
                continue
            abs_path = Path(root) / filename
            if not abs_path.is_file():
                continue
            # Use POSIX-style paths for cross-platform consistency
            all_files.append(abs_path.relative_to(folder_path).as_posix())
    return all_files


def scan_directory(
    folder_path: Path,
    *,
    manifest_name: str = MANIFEST_FILE_NAME,
    algorithm: str = DEFAULT_ALGORITHM,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    progress: bool = False,
    desc: str = "Scanning"
) -> list[ManifestEntry]:
    """
    Scan a folder and return one manifest entry per tracked file.

    Args:
        folder_path: Path to the folder to scan
        manifest_name: File name excluded from the scan at any depth
        algorithm: Checksum algorithm ("sha256" or "xxh64")
        chunk_size: Read size used while hashing
        progress: Show a progress bar on stderr
        desc: Description for the progress bar

    Returns:
        Entries in traversal order; empty if the folder holds no files

    Raises:
        DirectoryNotFoundError: If the folder does not exist
    """
    folder_path = Path(folder_path)
    if not folder_path.is_dir():
        raise DirectoryNotFoundError(folder_path)

    all_files = list_files(folder_path, manifest_name)
    entries = []

    with tqdm(all_files, desc=desc, unit="file", disable=not progress) as pbar:
        for rel_path in pbar:
            entries.append(get_file_entry(folder_path, rel_path, algorithm, chunk_size))

    logger.debug("Scanned %d files in %s", len(entries), folder_path)
    return entries


def generate_manifest(folder_path: Path, settings: Optional[Settings] = None) -> list[ManifestEntry]:
    """Scan a folder and write its manifest file at the folder root."""
    settings = settings or Settings()
    folder_path = Path(folder_path)

    entries = scan_directory(
        folder_path,
        manifest_name=settings.manifest_name,
        algorithm=settings.algorithm,
        chunk_size=settings.chunk_size,
        progress=settings.progress,
    )
    save_manifest(entries, folder_path / settings.manifest_name)
    logger.info("Wrote manifest with %d entries to %s", len(entries), folder_path / settings.manifest_name)
    return entries
