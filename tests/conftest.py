"""Shared test fixtures."""

import os
import tempfile
from pathlib import Path

import pytest

from manifested.models import ManifestEntry


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_tree():
    """Return a helper that writes a {relative path: content} mapping below a root."""
    def _make_tree(root: Path, files: dict) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        for relative_path, content in files.items():
            path = root / relative_path
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content)
        return root
    return _make_tree


@pytest.fixture
def sample_tree(temp_dir, make_tree):
    """Create a small directory tree with nested folders."""
    return make_tree(temp_dir / "tree", {
        "readme.txt": "hello world",
        "docs/guide.txt": "the guide",
        "docs/api/reference.txt": "api reference",
        "data.bin": bytes(range(256)),
    })


@pytest.fixture
def sync_folders(temp_dir, make_tree):
    """Create a source and a diverged target folder for sync tests."""
    source = make_tree(temp_dir / "source", {
        "a.txt": "alpha",
        "docs/b.txt": "bravo",
        "new/c.txt": "charlie",
        "moved/d.txt": "delta",
    })
    target = make_tree(temp_dir / "target", {
        "a.txt": "alpha, older and longer",
        "docs/b.txt": "bravo",
        "old/d.txt": "delta",
        "stale/e.txt": "echo",
    })
    return source, target


@pytest.fixture
def can_symlink(temp_dir):
    """Skip the test when the platform or user cannot create symlinks."""
    probe = temp_dir / "symlink_probe"
    try:
        os.symlink(temp_dir, probe)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks are not supported here")
    probe.unlink()


@pytest.fixture
def sample_entry():
    """Create a sample ManifestEntry for testing."""
    return ManifestEntry(
        file_path="docs/guide.txt",
        file_size=1024,
        checksum="abc123def456"
    )
