"""Move-aware comparison of two manifests."""

from collections import defaultdict
from typing import Iterable, Optional

from .models import ManifestDiff, ManifestEntry, ManifestState


class _OldEntryIndex:
    """
    Old manifest entries that have not yet been matched to a new entry.

    Entries are looked up by path and by checksum. Each can be taken at most
    once; lookups only ever see entries still remaining, in their original
    manifest order.
    """

    def __init__(self, entries: Iterable[ManifestEntry]):
        self._entries = list(entries)
        self._remaining = set(range(len(self._entries)))
        self._by_path = defaultdict(list)
        self._by_checksum = defaultdict(list)

        for position, entry in enumerate(self._entries):
            self._by_path[entry.file_path].append(position)
            self._by_checksum[entry.checksum_key].append(position)

    def _alive(self, positions: list[int]) -> list[int]:
        return [p for p in positions if p in self._remaining]

    def find_exact(self, entry: ManifestEntry) -> Optional[int]:
        for position in self._alive(self._by_path.get(entry.file_path, [])):
            if self._entries[position] == entry:
                return position
        return None

    def find_by_checksum(self, entry: ManifestEntry) -> list[int]:
        return self._alive(self._by_checksum.get(entry.checksum_key, []))

    def find_by_path(self, file_path: str) -> Optional[int]:
        positions = self._alive(self._by_path.get(file_path, []))
        return positions[0] if positions else None

    def get(self, position: int) -> ManifestEntry:
        return self._entries[position]

    def take(self, position: int) -> ManifestEntry:
        self._remaining.remove(position)
        return self._entries[position]

    def remaining(self) -> list[ManifestEntry]:
        return [self._entries[p] for p in sorted(self._remaining)]


def _match(entry: ManifestEntry, old: _OldEntryIndex) -> ManifestDiff:
    # Exact match: path, size and checksum.
    exact = old.find_exact(entry)
    if exact is not None:
        old.take(exact)
        return ManifestDiff(ManifestState.UNCHANGED, entry, entry)

    # Same content elsewhere means the file was moved, unless one of the
    # candidates still lives at this path.
    checksum_matches = old.find_by_checksum(entry)
    if checksum_matches:
        first = old.take(checksum_matches[0])

        if all(old.get(p).file_path != entry.file_path for p in checksum_matches):
            # An old file with different content at the destination is superseded.
            displaced = old.find_by_path(entry.file_path)
            if displaced is not None:
                old.take(displaced)
            return ManifestDiff(ManifestState.MOVED, first, entry)

    name_match = old.find_by_path(entry.file_path)
    if name_match is not None:
        return ManifestDiff(ManifestState.CHANGED, old.take(name_match), entry)

    return ManifestDiff(ManifestState.ADDED, None, entry)


def diff_manifests(
    new_manifest: Iterable[ManifestEntry],
    old_manifest: Optional[Iterable[ManifestEntry]] = None
) -> list[ManifestDiff]:
    """
    Compare a new manifest against an old one.

    Each new entry is classified, in order, as unchanged, moved, changed or
    added; each old entry is consumed by at most one new entry. Old entries
    left over afterwards are reported as removed, in old manifest order.

    When several old entries share a new entry's checksum, the first one in
    old manifest order is taken as the move source. Copies are not detected:
    a second new file with the same content is reported as added.

    Args:
        new_manifest: Entries describing the current state
        old_manifest: Entries describing the previous state, or None

    Returns:
        Diff records, new entries first, then removals
    """
    old = _OldEntryIndex(old_manifest or [])
    result = [_match(entry, old) for entry in new_manifest]
    result.extend(ManifestDiff(ManifestState.REMOVED, entry, None) for entry in old.remaining())
    return result
