# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Fixed identifiers shared between the config layer and the pipeline.

Kept free of imports so the config schema can use them without pulling in
the build machinery.
"""

SUPPORTED_PLATFORMS: tuple[str, ...] = ("ios", "android")

# Platforms whose bundler output is split into density buckets.
DENSITY_BUCKETED_PLATFORMS: frozenset[str] = frozenset({"android"})

SIGNATURE_ALGORITHMS: tuple[str, ...] = (
    "RSA-SHA256",
    "RSA-SHA384",
    "RSA-SHA512",
    "ECDSA-SHA256",
    "ECDSA-SHA384",
    "ECDSA-SHA512",
)
DEFAULT_SIGNATURE_ALGORITHM = "RSA-SHA256"

RSA_KEY_SIZES: tuple[int, ...] = (2048, 3072, 4096)
EC_CURVE_SIZES: tuple[int, ...] = (256, 384, 521)
DEFAULT_KEY_SIZES: dict[str, int] = {"RSA": 2048, "ECDSA": 256}

BUILDER_ID = "hotpack"
MANIFEST_FILENAME = "manifest.json"
INDEX_FILENAME = "packages-manifest.json"
SUMMARY_FILENAME = "BUILD_SUMMARY.md"
PACKAGES_DIRNAME = "packages"
KEYS_DIRNAME = "keys"
DEFAULT_KEY_NAME = "hotupdate"


def algorithm_family(algorithm: str) -> str:
    """Family prefix of an algorithm id, e.g. RSA for RSA-SHA256."""
    return algorithm.split("-", 1)[0]


def valid_key_sizes(algorithm: str) -> tuple[int, ...]:
    """Key sizes (RSA modulus bits or EC curve bits) allowed for an algorithm."""
    return RSA_KEY_SIZES if algorithm_family(algorithm) == "RSA" else EC_CURVE_SIZES
