# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Asset enumeration and content hashing for one platform's output.

Two sources feed a platform's asset list:

  1. What the bundler wrote into the assets directory. Android output is
     split into density buckets (drawable-xxxhdpi ... drawable-mdpi, raw),
     iOS output is read flat.
  2. Supplementary files from the project, picked by include/exclude globs
     and copied into the assets directory.

Every file is streamed through SHA-256. A file that can't be read is left
out of the result and reported as a warning instead of failing the platform.

The digest cache is owned by the catalog instance. Nothing here is global:
whoever constructs the catalog decides how long cached digests live, and
clears them with `invalidate`.
"""

import fnmatch
import shutil
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from hotpack.config.spec import AssetPolicy
from hotpack.constants import DENSITY_BUCKETED_PLATFORMS
from hotpack.errors import HashError
from hotpack.logging.logger import get_logger
from hotpack.utils.hashing import compute_sha256, legacy_token
from hotpack.utils.paths import relative_posix, validate_path_within

_logger = get_logger(__name__)

ASSET_URL_PREFIX = "assets"

# Highest density first, then the flat raw bucket.
DENSITY_BUCKETS: tuple[tuple[str, float], ...] = (
    ("drawable-xxxhdpi", 4),
    ("drawable-xxhdpi", 3),
    ("drawable-xhdpi", 2),
    ("drawable-hdpi", 1.5),
    ("drawable-mdpi", 1),
    ("raw", 1),
)


@dataclass(frozen=True)
class AssetRecord:
    """One asset file as it appears in a manifest."""

    name: str
    type: str
    url: str
    scales: tuple[float, ...]
    hash: str
    sha256: str

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "type": self.type,
            "url": self.url,
            "hash": self.hash,
            "sha256": self.sha256,
        }


@dataclass(frozen=True)
class CatalogResult:
    records: tuple[AssetRecord, ...] = ()
    warnings: tuple[str, ...] = ()

    def merged(self, other: "CatalogResult") -> "CatalogResult":
        """
        This result followed by `other`, order preserved.

        A URL present in both is kept only from `other`. A flat platform's
        scan can pick up a supplementary copy left by an earlier build.
        """
        replaced = {r.url for r in other.records}
        return CatalogResult(
            records=tuple(r for r in self.records if r.url not in replaced) + other.records,
            warnings=self.warnings + other.warnings,
        )


def _matches(relative: str, patterns: tuple[str, ...]) -> bool:
    """
    Glob match on a forward-slash relative path.

    fnmatch's `*` already crosses `/`, so "dir/**" covers everything under
    dir. A leading "**/" must also match files at the top level, which
    fnmatch alone would miss.
    """
    for pattern in patterns:
        if fnmatch.fnmatchcase(relative, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatchcase(relative, pattern[3:]):
            return True
    return False


@dataclass
class AssetCatalog:
    """
    Collects AssetRecords for a platform.

    Safe to share between platform pipelines running on different threads;
    the digest cache is the only mutable state and is lock-guarded.
    """

    project_root: Path
    _digests: dict[Path, str] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def digest(self, path: Path) -> str:
        """
        SHA-256 hex digest of a file, served from the cache when possible.

        Raises:
            HashError: If the file can't be read.
        """
        key = path.resolve()
        with self._lock:
            cached = self._digests.get(key)
        if cached is not None:
            return cached

        try:
            value = compute_sha256(key)
        except OSError as err:
            raise HashError(f"Cannot hash {path}: {err}", path=str(path)) from err

        with self._lock:
            self._digests[key] = value
        return value

    def invalidate(self, path: Optional[Path] = None) -> None:
        """Drop one cached digest, or all of them when `path` is None."""
        with self._lock:
            if path is None:
                self._digests.clear()
            else:
                self._digests.pop(path.resolve(), None)

    def _record(
        self,
        file_path: Path,
        url: str,
        scales: tuple[float, ...],
        warnings: list[str],
    ) -> Optional[AssetRecord]:
        try:
            sha256 = self.digest(file_path)
            token = legacy_token(file_path)
        except HashError as err:
            warnings.append(str(err))
            _logger.warning("Asset skipped", extra={"path": err.path, "error": str(err)})
            return None
        except OSError as err:
            warnings.append(f"Cannot stat {file_path}: {err}")
            _logger.warning("Asset skipped", extra={"path": str(file_path), "error": str(err)})
            return None

        return AssetRecord(
            name=file_path.name,
            type=file_path.suffix[1:],
            url=url,
            scales=scales,
            hash=token,
            sha256=sha256,
        )

    def collect(self, assets_dir: Path, platform: str) -> CatalogResult:
        """
        Enumerate the bundler's asset output for a platform.

        Args:
            assets_dir: The `--assets-dest` directory the bundler wrote into.
            platform: Target platform; decides bucketed vs flat enumeration.

        Returns:
            Records in enumeration order plus any per-file warnings.
        """
        records: list[AssetRecord] = []
        warnings: list[str] = []

        if not assets_dir.is_dir():
            return CatalogResult()

        if platform in DENSITY_BUCKETED_PLATFORMS:
            for bucket, scale in DENSITY_BUCKETS:
                bucket_dir = assets_dir / bucket
                if not bucket_dir.is_dir():
                    continue
                for file_path in sorted(p for p in bucket_dir.iterdir() if p.is_file()):
                    url = f"{ASSET_URL_PREFIX}/{bucket}/{file_path.name}"
                    record = self._record(file_path, url, (scale,), warnings)
                    if record is not None:
                        records.append(record)
        else:
            for file_path in sorted(p for p in assets_dir.iterdir() if p.is_file()):
                url = f"{ASSET_URL_PREFIX}/{file_path.name}"
                record = self._record(file_path, url, (1,), warnings)
                if record is not None:
                    records.append(record)

        _logger.info(
            "Assets collected",
            extra={"platform": platform, "count": len(records), "skipped": len(warnings)},
        )
        return CatalogResult(records=tuple(records), warnings=tuple(warnings))

    def collect_supplementary(self, assets_dir: Path, policy: AssetPolicy) -> CatalogResult:
        """
        Copy project files matching the include globs into `assets_dir`.

        Relative paths are preserved, so `<project>/assets/fonts/a.ttf`
        lands at `<assets_dir>/assets/fonts/a.ttf` and is served from
        `assets/assets/fonts/a.ttf`.
        """
        records: list[AssetRecord] = []
        warnings: list[str] = []
        seen: set[str] = set()

        for pattern in policy.include:
            for source in sorted(self.project_root.glob(pattern)):
                if not source.is_file():
                    continue
                try:
                    relative = relative_posix(source, self.project_root)
                    destination = validate_path_within(assets_dir / relative, assets_dir)
                except ValueError as err:
                    warnings.append(f"Skipped {source}: {err}")
                    _logger.warning("Asset outside project", extra={"path": str(source)})
                    continue
                if relative in seen or _matches(relative, policy.exclude):
                    continue
                seen.add(relative)

                try:
                    destination.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(source, destination)
                except OSError as err:
                    warnings.append(f"Cannot copy {relative}: {err}")
                    _logger.warning("Asset copy failed", extra={"path": relative, "error": str(err)})
                    continue

                url = f"{ASSET_URL_PREFIX}/{relative}"
                record = self._record(source, url, (1,), warnings)
                if record is not None:
                    records.append(record)

        if records:
            _logger.info("Supplementary assets copied", extra={"count": len(records)})
        return CatalogResult(records=tuple(records), warnings=tuple(warnings))
