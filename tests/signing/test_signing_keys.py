# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for key generation, key files and the per-run key provider.
"""

import os
import stat
import sys
import threading
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from hotpack.config.spec import SignaturePolicy
from hotpack.errors import SigningError
from hotpack.signing import keys as keys_module
from hotpack.signing.keys import (
    SigningKeyProvider,
    generate_key_pair,
    key_file_names,
    read_key_file,
    save_key_pair,
)


def _policy(tmp_path: Path, **overrides: object) -> SignaturePolicy:
    values: dict[str, object] = {
        "enabled": True,
        "algorithm": "ECDSA-SHA256",
        "key_size": 256,
        "private_key_path": None,
        "public_key_path": None,
        "auto_generate": True,
        "key_directory": tmp_path / "keys",
    }
    values.update(overrides)
    return SignaturePolicy(**values)  # type: ignore[arg-type]


class TestGenerate:
    def test_rsa_key(self) -> None:
        pair = generate_key_pair("RSA-SHA256", 2048)
        key = serialization.load_pem_private_key(pair.private_key_pem.encode(), password=None)
        assert isinstance(key, rsa.RSAPrivateKey)
        assert key.key_size == 2048
        assert pair.public_key_pem.startswith("-----BEGIN PUBLIC KEY-----")

    @pytest.mark.parametrize("size, curve", [(256, "secp256r1"), (384, "secp384r1"), (521, "secp521r1")])
    def test_ec_curves(self, size: int, curve: str) -> None:
        pair = generate_key_pair("ECDSA-SHA384", size)
        key = serialization.load_pem_private_key(pair.private_key_pem.encode(), password=None)
        assert isinstance(key, ec.EllipticCurvePrivateKey)
        assert key.curve.name == curve

    def test_family_default_size(self) -> None:
        pair = generate_key_pair("ECDSA-SHA256")
        key = serialization.load_pem_private_key(pair.private_key_pem.encode(), password=None)
        assert key.curve.name == "secp256r1"  # type: ignore[union-attr]

    def test_invalid_size(self) -> None:
        with pytest.raises(SigningError, match="Invalid key size"):
            generate_key_pair("RSA-SHA256", 256)

    def test_unknown_algorithm(self) -> None:
        with pytest.raises(SigningError, match="Unsupported algorithm"):
            generate_key_pair("DSA-SHA1")

    def test_repr_hides_private_key(self) -> None:
        pair = generate_key_pair("ECDSA-SHA256")
        assert "PRIVATE KEY" not in repr(pair)


class TestKeyFiles:
    def test_names(self) -> None:
        assert key_file_names("app") == ("app_private.pem", "app_public.pem")

    def test_save_and_read(self, tmp_path: Path) -> None:
        pair = generate_key_pair("ECDSA-SHA256")
        paths = save_key_pair(pair, tmp_path / "keys", "app")

        assert paths.private_key_path.name == "app_private.pem"
        assert read_key_file(paths.private_key_path) == pair.private_key_pem
        assert read_key_file(paths.public_key_path) == pair.public_key_pem

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_private_key_mode(self, tmp_path: Path) -> None:
        paths = save_key_pair(generate_key_pair("ECDSA-SHA256"), tmp_path)
        assert stat.S_IMODE(os.stat(paths.private_key_path).st_mode) == 0o600

    def test_read_missing(self, tmp_path: Path) -> None:
        with pytest.raises(SigningError):
            read_key_file(tmp_path / "nope.pem")


class TestProvider:
    def test_generates_once(self, tmp_path: Path) -> None:
        provider = SigningKeyProvider(_policy(tmp_path))
        first = provider.get()
        second = provider.get()

        assert first is second
        assert provider.generated_paths is not None
        assert provider.generated_paths.private_key_path == tmp_path / "keys" / "hotupdate_private.pem"
        assert sorted(p.name for p in (tmp_path / "keys").iterdir()) == [
            "hotupdate_private.pem",
            "hotupdate_public.pem",
        ]

    def test_concurrent_callers_share_one_key(self, tmp_path: Path) -> None:
        provider = SigningKeyProvider(_policy(tmp_path))
        seen: list[str] = []
        lock = threading.Lock()

        def grab() -> None:
            pem = provider.get().public_key_pem
            with lock:
                seen.append(pem)

        threads = [threading.Thread(target=grab) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(seen) == 4
        assert len(set(seen)) == 1

    def test_failed_save_is_not_retried(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("a regular file", encoding="utf-8")
        calls: list[str] = []

        def counting_generate(algorithm: str, size_or_curve: object = None) -> object:
            calls.append(algorithm)
            return generate_key_pair(algorithm, size_or_curve)  # type: ignore[arg-type]

        monkeypatch.setattr(keys_module, "generate_key_pair", counting_generate)
        provider = SigningKeyProvider(_policy(tmp_path, key_directory=blocker / "keys"))

        for _ in range(3):
            with pytest.raises(SigningError, match="Cannot save generated key pair"):
                provider.get()

        assert len(calls) == 1
        assert provider.generated_paths is None

    def test_loads_configured_key(self, tmp_path: Path) -> None:
        pair = generate_key_pair("ECDSA-SHA256")
        paths = save_key_pair(pair, tmp_path / "mine")
        provider = SigningKeyProvider(_policy(tmp_path, private_key_path=paths.private_key_path))

        loaded = provider.get()

        assert loaded.public_key_pem == pair.public_key_pem
        assert provider.generated_paths is None
        assert not (tmp_path / "keys").exists()

    def test_no_key_and_no_generation(self, tmp_path: Path) -> None:
        provider = SigningKeyProvider(_policy(tmp_path, auto_generate=False))
        with pytest.raises(SigningError):
            provider.get()

    def test_garbage_key_file(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.pem"
        bad.write_text("not a key", encoding="utf-8")
        provider = SigningKeyProvider(_policy(tmp_path, private_key_path=bad))
        with pytest.raises(SigningError, match="Cannot load private key"):
            provider.get()
