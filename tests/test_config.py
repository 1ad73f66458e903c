"""Tests for manifested.config module."""

import pytest

from manifested.config import DEFAULT_CHUNK_SIZE, MANIFEST_FILE_NAME, Settings, load_settings


class TestSettings:
    """Tests for Settings dataclass."""

    def test_defaults(self):
        settings = Settings()
        assert settings.manifest_name == MANIFEST_FILE_NAME == ".manifest"
        assert settings.algorithm == "sha256"
        assert settings.chunk_size == DEFAULT_CHUNK_SIZE
        assert settings.progress is False

    def test_unknown_algorithm(self):
        with pytest.raises(ValueError, match="Unknown hash algorithm"):
            Settings(algorithm="md5")

    @pytest.mark.parametrize("chunk_size", [0, -1])
    def test_chunk_size_must_be_positive(self, chunk_size):
        with pytest.raises(ValueError):
            Settings(chunk_size=chunk_size)

    @pytest.mark.parametrize("name", ["", "sub/.manifest", "sub\\.manifest"])
    def test_manifest_name_must_be_a_file_name(self, name):
        with pytest.raises(ValueError):
            Settings(manifest_name=name)


class TestLoadSettings:
    """Tests for load_settings function."""

    def test_empty_environment_gives_defaults(self):
        assert load_settings(environ={}) == Settings()

    def test_environment_values(self):
        settings = load_settings(environ={
            "MANIFESTED_MANIFEST_NAME": "files.lst",
            "MANIFESTED_HASH": "XXH64",
            "MANIFESTED_CHUNK_SIZE": "4096",
            "MANIFESTED_PROGRESS": "yes",
        })

        assert settings == Settings(
            manifest_name="files.lst", algorithm="xxh64", chunk_size=4096, progress=True
        )

    def test_overrides_beat_environment(self):
        settings = load_settings(environ={"MANIFESTED_HASH": "xxh64"}, algorithm="sha256")
        assert settings.algorithm == "sha256"

    def test_none_overrides_are_ignored(self):
        settings = load_settings(environ={"MANIFESTED_HASH": "xxh64"}, algorithm=None, progress=None)
        assert settings.algorithm == "xxh64"
        assert settings.progress is False

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError, match="MANIFESTED_CHUNK_SIZE"):
            load_settings(environ={"MANIFESTED_CHUNK_SIZE": "big"})

    def test_invalid_progress_flag(self):
        with pytest.raises(ValueError, match="MANIFESTED_PROGRESS"):
            load_settings(environ={"MANIFESTED_PROGRESS": "maybe"})

    def test_invalid_algorithm_from_environment(self):
        with pytest.raises(ValueError):
            load_settings(environ={"MANIFESTED_HASH": "crc32"})

    def test_unknown_override(self):
        with pytest.raises(TypeError):
            load_settings(environ={}, colour="blue")

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("MANIFESTED_MANIFEST_NAME", "index.txt")
        assert load_settings().manifest_name == "index.txt"
