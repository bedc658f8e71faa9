# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for hashing utilities.

SHA-256 must produce identical output for identical input, and the
"sha256:" prefix used in manifests must be accepted wherever a hash is
compared.
"""

import hashlib
from pathlib import Path

from hotpack.utils.hashing import (
    HASH_BUFFER_SIZE,
    compute_sha256,
    legacy_token,
    strip_prefix,
    verify_checksum,
    with_prefix,
)

ABC_SHA256 = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


class TestSha256:
    def test_empty_file_has_known_hash(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.bin"
        empty.write_bytes(b"")
        expected = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        assert compute_sha256(empty) == expected

    def test_known_vector(self, tmp_path: Path) -> None:
        test_file = tmp_path / "abc.bin"
        test_file.write_bytes(b"abc")
        assert compute_sha256(test_file) == ABC_SHA256

    def test_file_larger_than_buffer(self, tmp_path: Path) -> None:
        content = b"0123456789" * (HASH_BUFFER_SIZE // 5)
        test_file = tmp_path / "big.bin"
        test_file.write_bytes(content)
        assert compute_sha256(test_file) == hashlib.sha256(content).hexdigest()


class TestPrefix:
    def test_with_and_strip(self) -> None:
        assert with_prefix("abc") == "sha256:abc"
        assert strip_prefix("sha256:abc") == "abc"
        assert strip_prefix("abc") == "abc"


class TestVerifyChecksum:
    def test_bare_and_prefixed(self, tmp_path: Path) -> None:
        test_file = tmp_path / "abc.txt"
        test_file.write_bytes(b"abc")
        assert verify_checksum(test_file, ABC_SHA256) is True
        assert verify_checksum(test_file, with_prefix(ABC_SHA256)) is True
        assert verify_checksum(test_file, ABC_SHA256.upper()) is True

    def test_wrong_checksum_fails(self, tmp_path: Path) -> None:
        test_file = tmp_path / "tampered.txt"
        test_file.write_bytes(b"original content")
        assert verify_checksum(test_file, "0" * 64) is False


def test_legacy_token_is_mtime_millis(tmp_path: Path) -> None:
    test_file = tmp_path / "t.bin"
    test_file.write_bytes(b"x")
    assert legacy_token(test_file) == str(int(test_file.stat().st_mtime * 1000))
