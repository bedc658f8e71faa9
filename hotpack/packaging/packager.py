# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Turns finished platform directories into distributable archives.

    <output>/packages/
    ├─ ios-v1.2.0-2026-10-18.zip
    ├─ android-v1.2.0-2026-10-18.zip
    ├─ combined-1.2.0-2026-10-18.zip      (only when separate: false)
    └─ packages-manifest.json

Each platform directory is walked once for its statistics and then written
once into the archive. Both steps run one after the other over the same
directory; nothing writes into a platform directory while it is packaged.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from hotpack.constants import INDEX_FILENAME, MANIFEST_FILENAME
from hotpack.errors import PackageError
from hotpack.logging.logger import get_logger
from hotpack.packaging.archive import ArchiveWriter, ZipArchiveWriter
from hotpack.utils.filesystem import read_json, write_json

_logger: logging.Logger = get_logger(__name__)

DEFAULT_TEMPLATE = "{platform}-v{version}-{timestamp}"
COMBINED_TEMPLATE = "combined-{version}-{timestamp}"
COMBINED_PLATFORM = "combined"
BUNDLE_SUFFIXES: tuple[str, ...] = (".bundle", ".jsbundle")
UNKNOWN_CHECKSUM = "unknown"


@dataclass(frozen=True)
class DirectoryStats:
    bundle_size: int
    asset_count: int
    manifest: Optional[dict[str, Any]]


@dataclass(frozen=True)
class PackageInfo:
    """Metadata about one archive produced in a run."""

    platform: str
    version: str
    timestamp: str
    archive_path: Path
    size: int
    bundle_size: int
    asset_count: int
    checksum: str
    manifest: Any = None

    @property
    def filename(self) -> str:
        return self.archive_path.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "version": self.version,
            "timestamp": self.timestamp,
            "filename": self.filename,
            "size": self.size,
            "bundleSize": self.bundle_size,
            "assetCount": self.asset_count,
            "checksum": self.checksum,
        }


@dataclass(frozen=True)
class PackageIndex:
    """Every archive of a run, plus totals."""

    generated: str
    packages: tuple[PackageInfo, ...] = field(default_factory=tuple)
    errors: tuple[str, ...] = ()

    def with_errors(self, errors: Sequence[str]) -> "PackageIndex":
        return replace(self, errors=self.errors + tuple(errors))

    @property
    def total_packages(self) -> int:
        return len(self.packages)

    @property
    def total_size(self) -> int:
        """Sum of bundle sizes, not archive sizes."""
        return sum(p.bundle_size for p in self.packages)

    @property
    def total_assets(self) -> int:
        return sum(p.asset_count for p in self.packages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated": self.generated,
            "packages": [p.to_dict() for p in self.packages],
            "totalPackages": self.total_packages,
            "summary": {
                "platforms": [p.platform for p in self.packages],
                "totalSize": self.total_size,
                "totalAssets": self.total_assets,
            },
        }


def scan_directory(source_dir: Path) -> DirectoryStats:
    """
    Collect bundle size, asset count and the manifest of a platform directory.

    Source maps are neither bundles nor assets.
    """
    bundle_size = 0
    asset_count = 0
    manifest: Optional[dict[str, Any]] = None

    for file_path in sorted(p for p in source_dir.rglob("*") if p.is_file()):
        relative_parts = file_path.relative_to(source_dir).parts
        if file_path.suffix in BUNDLE_SUFFIXES:
            bundle_size += file_path.stat().st_size
        elif file_path.suffix == ".map":
            continue
        elif relative_parts == (MANIFEST_FILENAME,):
            data = read_json(file_path)
            manifest = data if isinstance(data, dict) else None
        elif relative_parts[0] == "assets":
            asset_count += 1

    return DirectoryStats(bundle_size=bundle_size, asset_count=asset_count, manifest=manifest)


def manifest_checksum(manifest: Optional[Mapping[str, Any]]) -> str:
    """The bundle's content hash from a manifest, or the legacy token, or "unknown"."""
    if not manifest:
        return UNKNOWN_CHECKSUM
    return str(manifest.get("bundleSHA256") or manifest.get("bundleHash") or UNKNOWN_CHECKSUM)


def render_name(template: str, platform: str, version: str, timestamp: str) -> str:
    return (
        template.replace("{platform}", platform)
        .replace("{version}", version)
        .replace("{timestamp}", timestamp)
    )


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class PackageAssembler:
    """
    Creates archives and the package index for one output directory.

    Args:
        output_dir: Where archives and packages-manifest.json are written.
        writer: Archive backend; ZIP when omitted.
        naming_template: Base name for per-platform archives.
    """

    def __init__(
        self,
        output_dir: Path,
        writer: Optional[ArchiveWriter] = None,
        naming_template: str = DEFAULT_TEMPLATE,
    ) -> None:
        self.output_dir = output_dir
        self.writer = writer or ZipArchiveWriter()
        self.naming_template = naming_template

    def _archive_path(self, base_name: str) -> Path:
        return self.output_dir / f"{base_name}{self.writer.extension}"

    def _write(self, archive_path: Path, sources: Mapping[str, Path]) -> int:
        try:
            self.writer.write(archive_path, sources)
            return archive_path.stat().st_size
        except OSError as err:
            raise PackageError(f"Failed to write archive {archive_path}: {err}") from err

    def package_platform(self, source_dir: Path, platform: str, version: str) -> PackageInfo:
        """
        Archive one platform directory.

        Raises:
            PackageError: If the directory is missing or the archive can't be written.
        """
        if not source_dir.is_dir():
            raise PackageError(f"Platform directory not found: {source_dir}")

        timestamp = _utc_now().strftime("%Y-%m-%d")
        try:
            stats = scan_directory(source_dir)
        except (OSError, ValueError) as err:
            raise PackageError(f"Cannot read platform directory {source_dir}: {err}") from err

        archive_path = self._archive_path(
            render_name(self.naming_template, platform, version, timestamp)
        )
        size = self._write(archive_path, {"": source_dir})

        _logger.info(
            "Package created",
            extra={"platform": platform, "archive": str(archive_path), "bytes": size},
        )
        return PackageInfo(
            platform=platform,
            version=version,
            timestamp=timestamp,
            archive_path=archive_path,
            size=size,
            bundle_size=stats.bundle_size,
            asset_count=stats.asset_count,
            checksum=manifest_checksum(stats.manifest),
            manifest=stats.manifest,
        )

    def package_combined(self, platform_dirs: Mapping[str, Path], version: str) -> PackageInfo:
        """
        Archive several platform directories, each nested under its platform name.

        Raises:
            PackageError: If a directory is missing or the archive can't be written.
        """
        timestamp = _utc_now().strftime("%Y-%m-%d")
        bundle_size = 0
        asset_count = 0
        manifests: dict[str, Any] = {}

        for platform, directory in platform_dirs.items():
            if not directory.is_dir():
                raise PackageError(f"Platform directory not found: {directory}")
            try:
                stats = scan_directory(directory)
            except (OSError, ValueError) as err:
                raise PackageError(f"Cannot read platform directory {directory}: {err}") from err
            bundle_size += stats.bundle_size
            asset_count += stats.asset_count
            manifests[platform] = stats.manifest

        archive_path = self._archive_path(
            render_name(COMBINED_TEMPLATE, COMBINED_PLATFORM, version, timestamp)
        )
        size = self._write(archive_path, dict(platform_dirs))

        _logger.info(
            "Combined package created",
            extra={"platforms": list(platform_dirs), "archive": str(archive_path), "bytes": size},
        )
        return PackageInfo(
            platform=COMBINED_PLATFORM,
            version=version,
            timestamp=timestamp,
            archive_path=archive_path,
            size=size,
            bundle_size=bundle_size,
            asset_count=asset_count,
            checksum=UNKNOWN_CHECKSUM,
            manifest=manifests,
        )

    def build_index(self, packages: Sequence[PackageInfo]) -> PackageIndex:
        generated = _utc_now().isoformat().replace("+00:00", "Z")
        return PackageIndex(generated=generated, packages=tuple(packages))

    def write_index(self, index: PackageIndex) -> Path:
        """
        Atomically write packages-manifest.json.

        Raises:
            PackageError: If the file can't be written.
        """
        path = self.output_dir / INDEX_FILENAME
        try:
            write_json(path, index.to_dict())
        except OSError as err:
            raise PackageError(f"Failed to write package index {path}: {err}") from err
        _logger.info(
            "Package index written",
            extra={"path": str(path), "packages": index.total_packages},
        )
        return path

    def validate(self, archive_path: Path) -> bool:
        """True if the archive exists and isn't empty."""
        if not archive_path.is_file():
            _logger.error("Package not found", extra={"archive": str(archive_path)})
            return False
        if archive_path.stat().st_size == 0:
            _logger.error("Package is empty", extra={"archive": str(archive_path)})
            return False
        return True
