"""
Manifested - track directory trees as (path, size, checksum) manifests.

Features:
- Manifest generation with symlink resolution
- Move-aware diffing of two manifests (moved/changed/added/removed)
- Integrity verification of a directory against its manifest
- Update, repair and deploy of a target tree from a source manifest
- SHA-256 checksums by default, xxhash for fast scans
"""

__version__ = "1.0.0"
