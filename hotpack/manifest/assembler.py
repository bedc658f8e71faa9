# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Manifest assembly for one platform.

The manifest is the JSON document a client downloads first: it names the
bundle, its size and content hash, and every asset with its own hash. The
client checks each downloaded file against these hashes, and checks the
manifest itself against the signature when one is present.

Assembly is deterministic given the same inputs and clock: the asset list
keeps the catalog's enumeration order and is never re-sorted.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from hotpack.assets.catalog import AssetRecord
from hotpack.config.spec import BuildSpec
from hotpack.constants import BUILDER_ID, MANIFEST_FILENAME
from hotpack.logging.logger import get_logger
from hotpack.utils.filesystem import read_json, write_json
from hotpack.utils.hashing import compute_sha256, legacy_token, with_prefix

_logger = get_logger(__name__)


@dataclass(frozen=True)
class BundleInfo:
    path: Path
    size: int
    legacy_hash: str
    sha256: str


@dataclass(frozen=True)
class Manifest:
    """
    One platform's manifest.

    `bundle_sha256` carries the "sha256:" prefix; asset hashes are bare hex.
    The signature triple is either fully present or fully absent.
    """

    version: str
    platform: str
    bundle_url: str
    bundle_size: int
    bundle_hash: str
    bundle_sha256: str
    assets: tuple[AssetRecord, ...]
    timestamp: int
    min_app_version: str
    metadata: dict[str, Any] = field(default_factory=dict)
    signature: Optional[str] = None
    public_key: Optional[str] = None
    signature_timestamp: Optional[int] = None

    @property
    def is_signed(self) -> bool:
        return self.signature is not None

    def with_signature(self, signature: str, public_key: str, timestamp: int) -> "Manifest":
        return replace(
            self, signature=signature, public_key=public_key, signature_timestamp=timestamp
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "platform": self.platform,
            "bundleUrl": self.bundle_url,
            "bundleSize": self.bundle_size,
            "bundleHash": self.bundle_hash,
            "bundleSHA256": self.bundle_sha256,
            "assets": [asset.to_dict() for asset in self.assets],
            "timestamp": self.timestamp,
            "minAppVersion": self.min_app_version,
            "metadata": dict(self.metadata),
        }
        if self.signature is not None:
            data["signature"] = self.signature
            data["publicKey"] = self.public_key
            data["signatureTimestamp"] = self.signature_timestamp
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Manifest":
        """
        Rebuild a Manifest from its JSON form.

        Asset scales aren't part of the wire format and come back as (1,).

        Raises:
            KeyError: If a required field is missing.
        """
        assets = tuple(
            AssetRecord(
                name=item["name"],
                type=item.get("type", ""),
                url=item["url"],
                scales=(1,),
                hash=item.get("hash", ""),
                sha256=item.get("sha256", ""),
            )
            for item in data.get("assets", [])
        )
        return cls(
            version=data["version"],
            platform=data["platform"],
            bundle_url=data["bundleUrl"],
            bundle_size=int(data["bundleSize"]),
            bundle_hash=str(data.get("bundleHash", "")),
            bundle_sha256=str(data.get("bundleSHA256", "")),
            assets=assets,
            timestamp=int(data["timestamp"]),
            min_app_version=data.get("minAppVersion", "1.0.0"),
            metadata=dict(data.get("metadata", {})),
            signature=data.get("signature"),
            public_key=data.get("publicKey"),
            signature_timestamp=data.get("signatureTimestamp"),
        )


def bundle_info(bundle_path: Path) -> BundleInfo:
    """
    Size, legacy token and prefixed SHA-256 of a bundle file.

    Raises:
        OSError: If the bundle can't be read.
    """
    return BundleInfo(
        path=bundle_path,
        size=bundle_path.stat().st_size,
        legacy_hash=legacy_token(bundle_path),
        sha256=with_prefix(compute_sha256(bundle_path)),
    )


def assemble(
    platform: str,
    bundle: BundleInfo,
    assets: Sequence[AssetRecord],
    spec: BuildSpec,
    now: Optional[datetime] = None,
) -> Manifest:
    """
    Build the manifest for a platform.

    Args:
        platform: Target platform.
        bundle: Output of `bundle_info`.
        assets: Catalog records in enumeration order.
        spec: The run's build description (version, flags).
        now: Clock override, mostly for tests.
    """
    moment = now or datetime.now(tz=timezone.utc)
    manifest = Manifest(
        version=spec.version,
        platform=platform,
        bundle_url=f"bundles/{bundle.path.name}",
        bundle_size=bundle.size,
        bundle_hash=bundle.legacy_hash,
        bundle_sha256=bundle.sha256,
        assets=tuple(assets),
        timestamp=int(moment.timestamp() * 1000),
        min_app_version=spec.min_app_version,
        metadata={
            "buildTime": moment.isoformat().replace("+00:00", "Z"),
            "builder": BUILDER_ID,
            "sourcemap": spec.sourcemap,
            "minified": spec.minify,
        },
    )
    _logger.debug(
        "Manifest assembled",
        extra={"platform": platform, "assets": len(manifest.assets), "bundle_size": bundle.size},
    )
    return manifest


def write_manifest(manifest: Manifest, directory: Path) -> Path:
    """Atomically write `manifest.json` into `directory`."""
    path = directory / MANIFEST_FILENAME
    write_json(path, manifest.to_dict())
    _logger.info("Manifest written", extra={"platform": manifest.platform, "path": str(path)})
    return path


def load_manifest(path: Path) -> Manifest:
    """
    Read a manifest from disk. `path` may be the file or its directory.

    Raises:
        FileNotFoundError: If there's no manifest.
        ValueError: If it isn't valid JSON or lacks required fields.
    """
    if path.is_dir():
        path = path / MANIFEST_FILENAME
    data = read_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"Manifest {path} must be a JSON object")
    try:
        return Manifest.from_dict(data)
    except (KeyError, TypeError, ValueError) as err:
        raise ValueError(f"Malformed manifest {path}: {err}") from err
