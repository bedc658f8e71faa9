# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Canonical manifest bytes: the exact input to signing and verification.

Two manifests with the same content must produce the same bytes no matter
how their keys were ordered when they were built or read back from disk:
  - the signature triple is removed first
  - keys are sorted at every level of nesting
  - no whitespace between tokens
  - UTF-8, non-ASCII characters written as-is
  - NaN and Infinity are rejected, since JSON has no spelling for them
"""

import json
from typing import Any, Mapping

SIGNATURE_FIELDS: tuple[str, ...] = ("signature", "publicKey", "signatureTimestamp")


def strip_signature_fields(manifest: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow copy of `manifest` without the signature triple."""
    return {key: value for key, value in manifest.items() if key not in SIGNATURE_FIELDS}


def canonicalize(manifest: Mapping[str, Any]) -> bytes:
    """
    Serialize a manifest mapping into canonical bytes.

    Raises:
        ValueError: If the manifest contains NaN or Infinity.
        TypeError: If it contains values JSON can't represent.
    """
    return json.dumps(
        strip_signature_fields(manifest),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")
