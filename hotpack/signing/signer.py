# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Manifest signing and verification.

A signature is written as "<ALGORITHM>:<base64>", e.g. "RSA-SHA256:MEUCIQ...".
It always covers the canonical bytes of the manifest with the signature
triple (signature, publicKey, signatureTimestamp) removed, so a signed
manifest can be verified by stripping the triple and canonicalizing again.

RSA signatures use PKCS#1 v1.5 padding. ECDSA signatures are DER-encoded.

Signing raises on failure. Verification never does: every problem comes
back as a VerificationResult with `is_valid=False` and a failure kind, so a
caller checking a hundred manifests gets a hundred answers.
"""

import base64
import binascii
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from hotpack.constants import SIGNATURE_ALGORITHMS, algorithm_family
from hotpack.errors import SigningError
from hotpack.logging.logger import get_logger
from hotpack.manifest.assembler import Manifest
from hotpack.manifest.canonical import canonicalize, strip_signature_fields
from hotpack.signing.keys import SignatureKeyPair, public_key_pem_of
from hotpack.utils.filesystem import read_json, write_json

_logger = get_logger(__name__)

SEPARATOR = ":"

_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    "SHA256": hashes.SHA256,
    "SHA384": hashes.SHA384,
    "SHA512": hashes.SHA512,
}


class VerifyFailure(str, Enum):
    INVALID_FORMAT = "InvalidFormat"
    UNSUPPORTED_ALGORITHM = "UnsupportedAlgorithm"
    DECODE_ERROR = "DecodeError"
    INVALID_KEY = "InvalidKey"
    SIGNATURE_MISMATCH = "SignatureMismatch"
    MISSING_SIGNATURE = "MissingSignature"
    MISSING_PUBLIC_KEY = "MissingPublicKey"
    READ_ERROR = "ReadError"


@dataclass(frozen=True)
class SignatureResult:
    signature: str
    algorithm: str
    public_key: str
    timestamp: int


@dataclass(frozen=True)
class VerificationResult:
    is_valid: bool
    algorithm: Optional[str] = None
    error: Optional[str] = None
    failure: Optional[VerifyFailure] = None
    timestamp: Optional[int] = None


def _now_ms() -> int:
    return int(time.time() * 1000)


def _hash_for(algorithm: str) -> hashes.HashAlgorithm:
    return _HASHES[algorithm.split("-", 1)[1]]()


def _failed(
    failure: VerifyFailure, error: str, algorithm: Optional[str] = None
) -> VerificationResult:
    return VerificationResult(is_valid=False, algorithm=algorithm, error=error, failure=failure)


def sign(canonical_bytes: bytes, private_key_pem: str, algorithm: str) -> SignatureResult:
    """
    Sign canonical manifest bytes.

    Args:
        canonical_bytes: Output of `canonicalize`.
        private_key_pem: PKCS#8 (or traditional) PEM private key.
        algorithm: One of SIGNATURE_ALGORITHMS; must match the key's family.

    Returns:
        The formatted signature, the public key derived from the private
        key, and the signing time in epoch milliseconds.

    Raises:
        SigningError: Unsupported algorithm, unloadable key, or a key whose
            family doesn't match the algorithm.
    """
    if algorithm not in SIGNATURE_ALGORITHMS:
        raise SigningError(f"Unsupported algorithm: {algorithm}")

    try:
        private_key = serialization.load_pem_private_key(
            private_key_pem.encode("utf-8"), password=None
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as err:
        raise SigningError(f"Cannot load private key: {err}") from err

    digest = _hash_for(algorithm)
    family = algorithm_family(algorithm)
    if family == "RSA":
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise SigningError(f"{algorithm} requires an RSA private key")
        raw = private_key.sign(canonical_bytes, padding.PKCS1v15(), digest)
    else:
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise SigningError(f"{algorithm} requires an EC private key")
        raw = private_key.sign(canonical_bytes, ec.ECDSA(digest))

    encoded = base64.b64encode(raw).decode("ascii")
    return SignatureResult(
        signature=f"{algorithm}{SEPARATOR}{encoded}",
        algorithm=algorithm,
        public_key=public_key_pem_of(private_key),
        timestamp=_now_ms(),
    )


def verify(
    canonical_bytes: bytes,
    signature_string: Optional[str],
    public_key_pem: Optional[str],
) -> VerificationResult:
    """
    Check a formatted signature against canonical manifest bytes.

    Never raises. On failure, `failure` says which step went wrong and
    `error` carries a readable message.
    """
    if not signature_string:
        return _failed(VerifyFailure.MISSING_SIGNATURE, "No signature found in manifest")
    if not isinstance(signature_string, str):
        return _failed(
            VerifyFailure.INVALID_FORMAT,
            f"Signature must be a string, got {type(signature_string).__name__}",
        )

    algorithm, sep, encoded = signature_string.partition(SEPARATOR)
    if not sep or not algorithm or not encoded:
        return _failed(
            VerifyFailure.INVALID_FORMAT,
            "Invalid signature format. Expected 'ALGORITHM:SIGNATURE'",
        )

    if algorithm not in SIGNATURE_ALGORITHMS:
        return _failed(
            VerifyFailure.UNSUPPORTED_ALGORITHM, f"Unsupported algorithm: {algorithm}", algorithm
        )

    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as err:
        return _failed(VerifyFailure.DECODE_ERROR, f"Signature is not valid base64: {err}", algorithm)

    if not public_key_pem:
        return _failed(
            VerifyFailure.MISSING_PUBLIC_KEY, "No public key available for verification", algorithm
        )

    if not isinstance(public_key_pem, str):
        return _failed(VerifyFailure.INVALID_KEY, "Public key must be a PEM string", algorithm)

    try:
        public_key = serialization.load_pem_public_key(public_key_pem.encode("utf-8"))
    except (ValueError, TypeError, UnsupportedAlgorithm) as err:
        return _failed(VerifyFailure.INVALID_KEY, f"Cannot load public key: {err}", algorithm)

    digest = _hash_for(algorithm)
    try:
        if algorithm_family(algorithm) == "RSA":
            if not isinstance(public_key, rsa.RSAPublicKey):
                return _failed(
                    VerifyFailure.INVALID_KEY, f"{algorithm} requires an RSA public key", algorithm
                )
            public_key.verify(raw, canonical_bytes, padding.PKCS1v15(), digest)
        else:
            if not isinstance(public_key, ec.EllipticCurvePublicKey):
                return _failed(
                    VerifyFailure.INVALID_KEY, f"{algorithm} requires an EC public key", algorithm
                )
            public_key.verify(raw, canonical_bytes, ec.ECDSA(digest))
    except InvalidSignature:
        return _failed(
            VerifyFailure.SIGNATURE_MISMATCH, "Signature does not match manifest content", algorithm
        )
    except TypeError as err:
        return _failed(VerifyFailure.INVALID_FORMAT, f"Cannot verify: {err}", algorithm)

    return VerificationResult(is_valid=True, algorithm=algorithm, timestamp=_now_ms())


def sign_manifest_object(manifest: Manifest, pair: SignatureKeyPair) -> Manifest:
    """Return `manifest` with the signature triple filled in."""
    result = sign(canonicalize(manifest.to_dict()), pair.private_key_pem, pair.algorithm)
    return manifest.with_signature(result.signature, result.public_key, result.timestamp)


def _read_manifest_dict(manifest_path: Path) -> dict[str, Any]:
    data = read_json(manifest_path)
    if not isinstance(data, dict):
        raise ValueError(f"Manifest {manifest_path} must be a JSON object")
    return data


def sign_manifest(manifest_path: Path, private_key_pem: str, algorithm: str) -> SignatureResult:
    """
    Sign a manifest file in place.

    Any existing signature triple is replaced. The file is rewritten
    atomically with 2-space indentation.

    Raises:
        SigningError: If the manifest can't be read, or signing fails.
    """
    try:
        manifest = strip_signature_fields(_read_manifest_dict(manifest_path))
    except (OSError, ValueError) as err:
        raise SigningError(f"Failed to sign manifest: {err}") from err

    try:
        payload = canonicalize(manifest)
    except (TypeError, ValueError) as err:
        raise SigningError(f"Manifest {manifest_path} cannot be canonicalized: {err}") from err

    result = sign(payload, private_key_pem, algorithm)
    manifest["signature"] = result.signature
    manifest["publicKey"] = result.public_key
    manifest["signatureTimestamp"] = result.timestamp
    write_json(manifest_path, manifest)

    _logger.info(
        "Manifest signed",
        extra={"path": str(manifest_path), "algorithm": algorithm},
    )
    return result


def verify_manifest(manifest_path: Path, public_key_pem: Optional[str] = None) -> VerificationResult:
    """
    Verify a manifest file.

    Uses `public_key_pem` when given, the manifest's embedded publicKey
    otherwise. The returned timestamp is the manifest's signatureTimestamp.
    Never raises.
    """
    try:
        data = _read_manifest_dict(manifest_path)
    except (OSError, ValueError) as err:
        return _failed(VerifyFailure.READ_ERROR, f"Verification failed: {err}")

    signature = data.get("signature")
    if not signature:
        return _failed(VerifyFailure.MISSING_SIGNATURE, "No signature found in manifest")

    key = public_key_pem or data.get("publicKey")
    if not key:
        return _failed(VerifyFailure.MISSING_PUBLIC_KEY, "No public key available for verification")

    try:
        payload = canonicalize(data)
    except (TypeError, ValueError) as err:
        return _failed(VerifyFailure.READ_ERROR, f"Verification failed: {err}")

    result = verify(payload, str(signature), str(key))
    if result.is_valid:
        timestamp = data.get("signatureTimestamp")
        return VerificationResult(
            is_valid=True,
            algorithm=result.algorithm,
            timestamp=timestamp if isinstance(timestamp, int) else result.timestamp,
        )
    return result
