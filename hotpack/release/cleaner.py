# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build output cleanup.

`hotpack clean` empties an output directory. Packages are kept unless
`remove_packages` is set: they are the deliverable, everything else can be
rebuilt. Leftover atomic-write temp files are always removed.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from hotpack.constants import PACKAGES_DIRNAME
from hotpack.logging.logger import get_logger
from hotpack.utils.filesystem import TEMP_PREFIX, directory_size

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class CleanResult:
    """Outcome of a cleanup operation."""

    removed_dirs: int
    removed_files: int
    freed_bytes: int
    kept: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def plan_clean(build_dir: Path, remove_packages: bool = False) -> tuple[list[Path], list[Path]]:
    """
    Split the top-level entries of `build_dir` into (to remove, to keep).

    Lets the CLI show what will happen before asking for confirmation.
    """
    if not build_dir.is_dir():
        return [], []
    remove: list[Path] = []
    keep: list[Path] = []
    for item in sorted(build_dir.iterdir()):
        if item.name == PACKAGES_DIRNAME and not remove_packages:
            keep.append(item)
        else:
            remove.append(item)
    return remove, keep


def clean_output(build_dir: Path, remove_packages: bool = False) -> CleanResult:
    """
    Remove build artifacts from an output directory.

    Args:
        build_dir: Output root of a previous build.
        remove_packages: Also delete packages/.

    Returns:
        CleanResult with counts of removed items. A missing directory is
        nothing to clean, not an error.
    """
    removed_dirs = 0
    removed_files = 0
    freed_bytes = 0
    errors: list[str] = []

    remove, keep = plan_clean(build_dir, remove_packages)

    _logger.info(
        "Starting cleanup",
        extra={"build_dir": str(build_dir), "remove_packages": remove_packages},
    )

    for item in remove:
        try:
            if item.is_dir() and not item.is_symlink():
                size = directory_size(item)
                shutil.rmtree(item)
                removed_dirs += 1
            else:
                size = item.lstat().st_size
                item.unlink()
                removed_files += 1
            freed_bytes += size
            _logger.debug("Removed", extra={"path": str(item)})
        except OSError as err:
            errors.append(f"Failed to remove {item}: {err}")

    # Temp files from interrupted atomic writes inside kept directories
    for kept_dir in keep:
        for tmp_file in sorted(kept_dir.rglob(f"{TEMP_PREFIX}*")):
            if tmp_file.is_file():
                try:
                    size = tmp_file.stat().st_size
                    tmp_file.unlink()
                    removed_files += 1
                    freed_bytes += size
                except OSError as err:
                    errors.append(f"Failed to remove {tmp_file}: {err}")

    freed_mb = freed_bytes / (1024 * 1024)
    _logger.info(
        "Cleanup complete",
        extra={
            "removed_dirs": removed_dirs,
            "removed_files": removed_files,
            "freed_mb": f"{freed_mb:.1f}",
            "errors": len(errors),
        },
    )

    return CleanResult(
        removed_dirs=removed_dirs,
        removed_files=removed_files,
        freed_bytes=freed_bytes,
        kept=[str(k) for k in keep],
        errors=errors,
    )
