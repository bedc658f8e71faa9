# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Hashing utilities for hotpack.

Every bundle and asset in a manifest carries a SHA-256 content hash. Files
are always streamed through the hasher in fixed-size chunks; bundles can be
tens of megabytes and asset trees much larger, so nothing here reads a whole
file into memory.

Manifests write bundle hashes with a "sha256:" prefix and asset hashes as
bare hex. Comparison helpers accept both.
"""

import hashlib
from pathlib import Path

HASH_ALGORITHM = "sha256"
HASH_PREFIX = "sha256:"
HASH_BUFFER_SIZE = 65536  # 64 KiB


def compute_sha256(file_path: Path) -> str:
    """
    Compute the SHA-256 hex digest of a file.

    Args:
        file_path: Path to the file to hash.

    Returns:
        Lowercase hex string of the SHA-256 digest.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        OSError: If the file can't be read.
    """
    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(HASH_BUFFER_SIZE)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()


def with_prefix(hex_digest: str) -> str:
    """Return the digest in "sha256:<hex>" form."""
    return f"{HASH_PREFIX}{hex_digest}"


def strip_prefix(digest: str) -> str:
    """Drop a leading "sha256:" if present."""
    if digest.startswith(HASH_PREFIX):
        return digest[len(HASH_PREFIX):]
    return digest


def verify_checksum(file_path: Path, expected_hash: str) -> bool:
    """
    Check whether a file's SHA-256 matches the expected hash.

    Accepts bare hex or the prefixed form, in any letter case.
    """
    actual_hash = compute_sha256(file_path)
    return actual_hash == strip_prefix(expected_hash).lower()


def legacy_token(file_path: Path) -> str:
    """
    Timestamp-derived token kept for older manifest consumers.

    The modification time in integer milliseconds, as a string. Not a
    content hash and not a security property.
    """
    return str(int(file_path.stat().st_mtime * 1000))
