# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Key material for manifest signing.

Private keys are PKCS#8 PEM, public keys SubjectPublicKeyInfo PEM, both
unencrypted. That is what the client runtime expects to embed.

Key pairs are written to disk as soon as they are generated. A generated key
that only ever lived in memory would sign a release nobody can verify later.
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from hotpack.config.spec import SignaturePolicy
from hotpack.constants import (
    DEFAULT_KEY_NAME,
    DEFAULT_KEY_SIZES,
    SIGNATURE_ALGORITHMS,
    algorithm_family,
    valid_key_sizes,
)
from hotpack.errors import SigningError
from hotpack.logging.logger import get_logger
from hotpack.utils.filesystem import atomic_write_bytes

_logger = get_logger(__name__)

PRIVATE_KEY_MODE = 0o600
RSA_PUBLIC_EXPONENT = 65537

_CURVES: dict[int, ec.EllipticCurve] = {
    256: ec.SECP256R1(),
    384: ec.SECP384R1(),
    521: ec.SECP521R1(),
}


@dataclass(frozen=True)
class SignatureKeyPair:
    """A PEM key pair. The private half is excluded from repr()."""

    private_key_pem: str = field(repr=False)
    public_key_pem: str
    algorithm: str


@dataclass(frozen=True)
class KeyPaths:
    private_key_path: Path
    public_key_path: Path


def key_file_names(key_name: str = DEFAULT_KEY_NAME) -> tuple[str, str]:
    """(`<name>_private.pem`, `<name>_public.pem`)"""
    return f"{key_name}_private.pem", f"{key_name}_public.pem"


def generate_key_pair(algorithm: str, size_or_curve: Optional[int] = None) -> SignatureKeyPair:
    """
    Generate a fresh key pair for a signature algorithm.

    Args:
        algorithm: One of SIGNATURE_ALGORITHMS.
        size_or_curve: RSA modulus bits (2048, 3072, 4096) or EC curve size
                       (256, 384, 521). The family default when None.

    Raises:
        SigningError: Unknown algorithm or a size the family doesn't support.
    """
    if algorithm not in SIGNATURE_ALGORITHMS:
        raise SigningError(f"Unsupported algorithm: {algorithm}")

    family = algorithm_family(algorithm)
    size = size_or_curve or DEFAULT_KEY_SIZES[family]
    if size not in valid_key_sizes(algorithm):
        raise SigningError(f"Invalid key size {size} for {algorithm}")

    if family == "RSA":
        private_key = rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=size)
    else:
        private_key = ec.generate_private_key(_CURVES[size])

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    public_pem = public_key_pem_of(private_key)

    _logger.info("Key pair generated", extra={"algorithm": algorithm, "key_size": size})
    return SignatureKeyPair(private_key_pem=private_pem, public_key_pem=public_pem, algorithm=algorithm)


def public_key_pem_of(private_key: object) -> str:
    """SubjectPublicKeyInfo PEM of a loaded private key."""
    public_key = private_key.public_key()  # type: ignore[attr-defined]
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


def save_key_pair(
    pair: SignatureKeyPair,
    directory: Path,
    key_name: str = DEFAULT_KEY_NAME,
) -> KeyPaths:
    """
    Write a key pair as `<key_name>_private.pem` and `<key_name>_public.pem`.

    The private key file is created with mode 0600.

    Raises:
        OSError: If either file can't be written.
    """
    private_name, public_name = key_file_names(key_name)
    private_path = directory / private_name
    public_path = directory / public_name

    atomic_write_bytes(private_path, pair.private_key_pem.encode("ascii"), mode=PRIVATE_KEY_MODE)
    atomic_write_bytes(public_path, pair.public_key_pem.encode("ascii"))

    _logger.info(
        "Key pair saved",
        extra={"private_key": str(private_path), "public_key": str(public_path)},
    )
    return KeyPaths(private_key_path=private_path, public_key_path=public_path)


def read_key_file(path: Path) -> str:
    """
    Read a PEM file.

    Raises:
        SigningError: If the file is missing or unreadable.
    """
    try:
        return path.read_text(encoding="utf-8")
    except OSError as err:
        raise SigningError(f"Cannot read key file {path}: {err}") from err


class SigningKeyProvider:
    """
    Supplies the signing key for one build run.

    Loads the configured private key, or generates and persists a key pair
    the first time a platform asks for one. Every platform in the run then
    signs with the same key. The provider is constructed by the caller and
    passed to the orchestrator; it holds no global state.
    """

    def __init__(self, policy: SignaturePolicy, key_directory: Optional[Path] = None) -> None:
        self._policy = policy
        self._key_directory = key_directory or policy.key_directory
        self._lock = threading.Lock()
        self._pair: Optional[SignatureKeyPair] = None
        self._failure: Optional[SigningError] = None
        self._generated_paths: Optional[KeyPaths] = None

    @property
    def algorithm(self) -> str:
        return self._policy.algorithm

    @property
    def generated_paths(self) -> Optional[KeyPaths]:
        """Where a generated key pair was written, or None if the key was loaded."""
        return self._generated_paths

    def get(self) -> SignatureKeyPair:
        """
        The run's key pair, loading or generating it on first call.

        A failed first attempt is remembered and re-raised, so a run never
        generates more than one key pair.

        Raises:
            SigningError: If the key can't be loaded or generated and saved.
        """
        with self._lock:
            if self._failure is not None:
                raise self._failure
            if self._pair is None:
                try:
                    self._pair = self._acquire()
                except SigningError as err:
                    self._failure = err
                    raise
            return self._pair

    def _acquire(self) -> SignatureKeyPair:
        policy = self._policy
        if policy.private_key_path is not None:
            private_pem = read_key_file(policy.private_key_path)
            try:
                private_key = serialization.load_pem_private_key(
                    private_pem.encode("utf-8"), password=None
                )
            except (ValueError, TypeError, UnsupportedAlgorithm) as err:
                raise SigningError(
                    f"Cannot load private key {policy.private_key_path}: {err}"
                ) from err
            _logger.info(
                "Signing key loaded",
                extra={"path": str(policy.private_key_path), "algorithm": policy.algorithm},
            )
            return SignatureKeyPair(
                private_key_pem=private_pem,
                public_key_pem=public_key_pem_of(private_key),
                algorithm=policy.algorithm,
            )

        if not policy.auto_generate:
            raise SigningError("No private key configured and auto-generation is disabled")

        pair = generate_key_pair(policy.algorithm, policy.key_size)
        try:
            self._generated_paths = save_key_pair(pair, self._key_directory, policy.key_name)
        except OSError as err:
            raise SigningError(f"Cannot save generated key pair to {self._key_directory}: {err}") from err
        return pair
