# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Bundle size comparison across the platforms of a build output."""

from dataclasses import dataclass
from pathlib import Path

from hotpack.constants import SUPPORTED_PLATFORMS
from hotpack.packaging.packager import BUNDLE_SUFFIXES


@dataclass(frozen=True)
class BundleSize:
    platform: str
    bundle_file: str
    size: int
    path: Path


@dataclass(frozen=True)
class SizeStats:
    average: float
    largest: int
    smallest: int

    @property
    def difference(self) -> int:
        return self.largest - self.smallest


def collect_bundle_sizes(build_dir: Path) -> list[BundleSize]:
    """Every bundle under `<build_dir>/<platform>/bundles`, largest first."""
    entries: list[BundleSize] = []
    for platform in SUPPORTED_PLATFORMS:
        bundles_dir = build_dir / platform / "bundles"
        if not bundles_dir.is_dir():
            continue
        for bundle in sorted(bundles_dir.iterdir()):
            if bundle.is_file() and bundle.suffix in BUNDLE_SUFFIXES:
                entries.append(
                    BundleSize(
                        platform=platform,
                        bundle_file=bundle.name,
                        size=bundle.stat().st_size,
                        path=bundle,
                    )
                )
    entries.sort(key=lambda e: e.size, reverse=True)
    return entries


def size_stats(entries: list[BundleSize]) -> SizeStats | None:
    if not entries:
        return None
    sizes = [e.size for e in entries]
    return SizeStats(average=sum(sizes) / len(sizes), largest=max(sizes), smallest=min(sizes))
