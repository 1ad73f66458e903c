"""Applying manifest diffs to directory trees."""

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, Optional

from tqdm import tqdm

from .codec import load_manifest, manifest_from_diff, save_manifest
from .config import Settings
from .differ import diff_manifests
from .errors import ManifestNotFoundError, SyncError
from .models import PATH_SEPARATOR, ManifestDiff, ManifestEntry, ManifestState
from .scanner import long_path
from .verifier import verify_directory

logger = logging.getLogger(__name__)


def copy_file(src: Path, dst: Path) -> None:
    """Copy a file, creating parent directories if needed."""
    # Use long path format on Windows
    dst_long = long_path(dst)
    dst_parent = os.path.dirname(dst_long)
    os.makedirs(dst_parent, exist_ok=True)
    shutil.copy2(long_path(src), dst_long)


def move_file(src: Path, dst: Path) -> None:
    """Rename a file, creating parent directories and replacing ``dst``."""
    dst_long = long_path(dst)
    os.makedirs(os.path.dirname(dst_long), exist_ok=True)
    os.replace(long_path(src), dst_long)


def remove_file(path: Path) -> None:
    """Delete a file; a file that is already gone is not an error."""
    try:
        os.remove(long_path(path))
    except FileNotFoundError:
        pass


def _apply_record(record: ManifestDiff, source_root: Path, target_root: Path) -> None:
    state = record.state

    if state is ManifestState.MOVED:
        src = target_root / record.last.file_path
        if os.path.lexists(long_path(src)):
            logger.info("applying %s", record.describe())
            move_file(src, target_root / record.current.file_path)
            return
        logger.warning("%s is missing, copying %s from source instead",
                       record.last.file_path, record.current.file_path)
        state = ManifestState.ADDED

    if state in (ManifestState.ADDED, ManifestState.CHANGED):
        logger.info('applying %s: "%s"', state, record.current.file_path)
        copy_file(source_root / record.current.file_path, target_root / record.current.file_path)
    elif state is ManifestState.REMOVED:
        logger.info("applying %s", record.describe())
        remove_file(target_root / record.last.file_path)


def apply_diff(
    diff: Iterable[ManifestDiff],
    source_root: Path,
    target_root: Path,
    progress: bool = False
) -> None:
    """
    Execute the file operations of a diff, in diff order.

    Added and changed files are copied from ``source_root``; moves are
    renames inside ``target_root`` (falling back to a copy if the file to
    move is missing); removed files are deleted from ``target_root``.

    Raises:
        SyncError: The first failing operation; nothing is rolled back
    """
    pending = [record for record in diff if record.state is not ManifestState.UNCHANGED]

    with tqdm(pending, desc="Applying", unit="file", disable=not progress) as pbar:
        for record in pbar:
            try:
                _apply_record(record, Path(source_root), Path(target_root))
            except OSError as e:
                raise SyncError(record.state.value, record.entry.file_path, str(e)) from e


def directories_of(manifest: Iterable[ManifestEntry]) -> set[str]:
    """All directories implied by a manifest: every ancestor of every file."""
    directories = set()
    for entry in manifest:
        parts = entry.file_path.split(PATH_SEPARATOR)[:-1]
        for depth in range(1, len(parts) + 1):
            directories.add(PATH_SEPARATOR.join(parts[:depth]))
    return directories


def obsolete_directories(
    old_manifest: Iterable[ManifestEntry],
    new_manifest: Iterable[ManifestEntry]
) -> list[str]:
    """Directories of the old manifest absent from the new one, deepest first."""
    stale = directories_of(old_manifest) - directories_of(new_manifest)
    return sorted(stale, key=lambda d: (-d.count(PATH_SEPARATOR), d))


def prune_directories(target_root: Path, directories: Iterable[str]) -> list[str]:
    """
    Remove the given directories below ``target_root`` if they are empty.

    Directories should be ordered deepest first so that emptied parents are
    removed too. Returns the directories that were removed.
    """
    removed = []
    for directory in directories:
        path = Path(target_root) / directory
        if path.is_symlink() or not path.is_dir():
            continue
        try:
            with os.scandir(long_path(path)) as entries:
                if any(entries):
                    continue
            os.rmdir(long_path(path))
        except OSError as e:
            raise SyncError("prune", directory, str(e)) from e
        logger.debug("Removed empty directory %s", directory)
        removed.append(directory)
    return removed


def apply_manifest(
    source_root: Path,
    source_manifest: list[ManifestEntry],
    target_root: Path,
    target_manifest: Optional[list[ManifestEntry]],
    settings: Optional[Settings] = None
) -> list[ManifestDiff]:
    """
    Bring ``target_root`` in line with ``source_manifest``.

    Diffs the source manifest against the target manifest, applies the
    resulting file operations, removes directories left empty by the update,
    and finally copies the source manifest file into the target. If the
    source root has no manifest file, the given source manifest is written.

    Returns:
        The diff that was applied
    """
    settings = settings or Settings()
    source_root = Path(source_root)
    target_root = Path(target_root)
    target_manifest = target_manifest or []

    diff = diff_manifests(source_manifest, target_manifest)
    apply_diff(diff, source_root, target_root, progress=settings.progress)

    prune_directories(target_root, obsolete_directories(target_manifest, source_manifest))

    source_manifest_path = source_root / settings.manifest_name
    target_manifest_path = target_root / settings.manifest_name
    if source_manifest_path.is_file():
        copy_file(source_manifest_path, target_manifest_path)
    else:
        save_manifest(source_manifest, target_manifest_path)

    return diff


def _load_required(root: Path, settings: Settings, role: str) -> list[ManifestEntry]:
    manifest_path = Path(root) / settings.manifest_name
    if not manifest_path.is_file():
        raise ManifestNotFoundError(manifest_path, role)
    return load_manifest(manifest_path)


def verify(directory: Path, settings: Optional[Settings] = None) -> list[ManifestDiff]:
    """Verify a managed directory against its own manifest."""
    settings = settings or Settings()
    manifest = _load_required(directory, settings, "Directory")
    return verify_directory(
        directory,
        manifest,
        algorithm=settings.algorithm,
        chunk_size=settings.chunk_size,
        progress=settings.progress,
    )


def compare(source_root: Path, target_root: Path, settings: Optional[Settings] = None) -> list[ManifestDiff]:
    """
    Diff the manifests of two managed directories without touching files.

    The target is the new side: records describe how the target differs
    from the source.
    """
    settings = settings or Settings()
    source_manifest = _load_required(source_root, settings, "Source directory")
    target_manifest = _load_required(target_root, settings, "Target directory")
    return diff_manifests(target_manifest, source_manifest)


def update(source_root: Path, target_root: Path, settings: Optional[Settings] = None) -> list[ManifestDiff]:
    """Update a managed target directory to match the source's manifest."""
    settings = settings or Settings()
    source_manifest = _load_required(source_root, settings, "Source directory")
    target_manifest = _load_required(target_root, settings, "Target directory")
    return apply_manifest(source_root, source_manifest, target_root, target_manifest, settings)


def repair(source_root: Path, target_root: Path, settings: Optional[Settings] = None) -> list[ManifestDiff]:
    """
    Update the target, then verify it and recopy anything that fails.

    With a target manifest, a normal update runs first and the target is
    then verified against the source manifest; files failing verification
    are pulled again. Without one, the target is verified directly and
    repaired only if something differs.

    Returns:
        The diff applied by the last pass (all unchanged if nothing was done)
    """
    settings = settings or Settings()
    source_root = Path(source_root)
    target_root = Path(target_root)
    source_manifest = _load_required(source_root, settings, "Source directory")
    target_manifest_path = target_root / settings.manifest_name

    if target_manifest_path.is_file():
        apply_manifest(source_root, source_manifest, target_root,
                       load_manifest(target_manifest_path), settings)

        logger.info("verifying %s", target_root)
        checked = verify_directory(
            target_root,
            source_manifest,
            algorithm=settings.algorithm,
            chunk_size=settings.chunk_size,
            progress=settings.progress,
        )
        return apply_manifest(source_root, source_manifest, target_root,
                              manifest_from_diff(checked), settings)

    checked = verify_directory(
        target_root,
        source_manifest,
        algorithm=settings.algorithm,
        chunk_size=settings.chunk_size,
        progress=settings.progress,
    )
    if all(record.state is ManifestState.UNCHANGED for record in checked):
        return checked

    logger.info("repairing %s", target_root)
    return apply_manifest(source_root, source_manifest, target_root,
                          manifest_from_diff(checked), settings)


def deploy(source_root: Path, target_root: Path, settings: Optional[Settings] = None) -> list[ManifestDiff]:
    """Copy the source manifest and every tracked file into the target."""
    settings = settings or Settings()
    source_root = Path(source_root)
    target_root = Path(target_root)
    source_manifest = _load_required(source_root, settings, "Source directory")

    target_root.mkdir(parents=True, exist_ok=True)
    return apply_manifest(source_root, source_manifest, target_root, None, settings)
