"""Tests for manifested.codec module."""

import pytest

from manifested.codec import (
    dumps,
    format_entry,
    load_manifest,
    loads,
    manifest_from_diff,
    parse_line,
    save_manifest,
)
from manifested.errors import InvalidPathError, MalformedManifestLineError
from manifested.models import ManifestDiff, ManifestEntry, ManifestState


@pytest.fixture
def manifest():
    return [
        ManifestEntry("readme.txt", 11, "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"),
        ManifestEntry("docs/guide.txt", 9, "0a1b2c3d"),
        ManifestEntry("empty.txt", 0, "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"),
    ]


class TestParseLine:
    """Tests for parse_line function."""

    def test_parse_basic_line(self):
        entry = parse_line("docs/guide.txt\t1024\tabc123")
        assert entry == ManifestEntry("docs/guide.txt", 1024, "abc123")

    def test_size_and_checksum_are_stripped(self):
        entry = parse_line("docs/guide.txt\t 1024 \t abc123 ")
        assert entry.file_path == "docs/guide.txt"
        assert entry.file_size == 1024
        assert entry.checksum == "abc123"

    def test_path_keeps_surrounding_spaces(self):
        assert parse_line(" docs/guide.txt \t1024\tabc123").file_path == " docs/guide.txt "

    @pytest.mark.parametrize("line", [
        "docs/guide.txt\t1024",
        "docs/guide.txt\t1024\tabc\textra",
        "docs/guide.txt 1024 abc",
        "",
    ])
    def test_wrong_field_count(self, line):
        with pytest.raises(MalformedManifestLineError, match="3 fields"):
            parse_line(line)

    @pytest.mark.parametrize("size", ["abc", "-1", "1.5", "", "1e3"])
    def test_unparsable_size(self, size):
        with pytest.raises(MalformedManifestLineError, match="Invalid file size"):
            parse_line(f"a.txt\t{size}\tabc")

    def test_malformed_line_is_value_error(self):
        with pytest.raises(ValueError):
            parse_line("a.txt\tnope\tabc")

    def test_invalid_path(self):
        with pytest.raises(InvalidPathError):
            parse_line("../etc/passwd\t10\tabc")

    def test_absolute_path(self):
        with pytest.raises(InvalidPathError):
            parse_line("/etc/passwd\t10\tabc")


class TestFormatEntry:
    """Tests for format_entry function."""

    def test_format_entry(self):
        assert format_entry(ManifestEntry("a/b.txt", 42, "ff00")) == "a/b.txt\t42\tff00"


class TestLoadsDumps:
    """Tests for whole-document parsing and serialization."""

    def test_roundtrip_preserves_entries_and_order(self, manifest):
        restored = loads(dumps(manifest))
        assert restored == manifest
        assert [e.file_path for e in restored] == [e.file_path for e in manifest]

    def test_roundtrip_keeps_surrounding_spaces_in_paths(self):
        entries = [ManifestEntry("note .txt ", 3, "ab"), ManifestEntry(" lead", 1, "cd")]

        restored = loads(dumps(entries))

        assert restored == entries
        assert [e.file_path for e in restored] == ["note .txt ", " lead"]

    def test_dumps_has_no_trailing_newline(self, manifest):
        text = dumps(manifest)
        assert not text.endswith("\n")
        assert text.count("\n") == len(manifest) - 1

    def test_dumps_empty(self):
        assert dumps([]) == ""

    def test_loads_empty(self):
        assert loads("") == []

    def test_loads_tolerates_trailing_newline(self):
        assert loads("a.txt\t1\taa\n") == [ManifestEntry("a.txt", 1, "aa")]

    def test_loads_tolerates_crlf(self):
        entries = loads("a.txt\t1\taa\r\nb.txt\t2\tbb\r\n")
        assert entries == [ManifestEntry("a.txt", 1, "aa"), ManifestEntry("b.txt", 2, "bb")]

    def test_loads_reports_line_number(self):
        with pytest.raises(MalformedManifestLineError, match="Line 2") as exc_info:
            loads("a.txt\t1\taa\nbroken line\nc.txt\t3\tcc")
        assert exc_info.value.line_number == 2

    def test_blank_line_in_the_middle_is_malformed(self):
        with pytest.raises(MalformedManifestLineError):
            loads("a.txt\t1\taa\n\nb.txt\t2\tbb")


class TestManifestFiles:
    """Tests for reading and writing manifest files."""

    def test_save_and_load(self, temp_dir, manifest):
        path = temp_dir / ".manifest"
        save_manifest(manifest, path)
        assert load_manifest(path) == manifest

    def test_file_is_tab_separated_utf8(self, temp_dir):
        path = temp_dir / ".manifest"
        save_manifest([ManifestEntry("naïve/résumé.txt", 3, "abc")], path)
        assert path.read_bytes() == "naïve/résumé.txt\t3\tabc".encode("utf-8")

    def test_save_overwrites(self, temp_dir, manifest):
        path = temp_dir / ".manifest"
        save_manifest(manifest, path)
        save_manifest(manifest[:1], path)
        assert load_manifest(path) == manifest[:1]

    def test_load_missing_file_raises(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_manifest(temp_dir / ".manifest")


class TestManifestFromDiff:
    """Tests for manifest_from_diff function."""

    def test_drops_removed_records(self):
        kept = ManifestEntry("a.txt", 1, "aa")
        changed = ManifestEntry("b.txt", 5, "")
        gone = ManifestEntry("c.txt", 1, "cc")
        diff = [
            ManifestDiff(ManifestState.UNCHANGED, kept, kept),
            ManifestDiff(ManifestState.CHANGED, ManifestEntry("b.txt", 2, "bb"), changed),
            ManifestDiff(ManifestState.REMOVED, gone, None),
        ]
        assert manifest_from_diff(diff) == [kept, changed]
