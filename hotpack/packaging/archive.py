# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Archive writers.

The packager only knows the ArchiveWriter interface: "put these directories
into one container at this path". ZipArchiveWriter is the production
implementation; tests can substitute their own.
"""

import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping

from hotpack.utils.paths import relative_posix


class ArchiveWriter(ABC):
    """Writes one or more directories into a single archive."""

    extension: str = ""

    @abstractmethod
    def write(self, archive_path: Path, sources: Mapping[str, Path]) -> None:
        """
        Create `archive_path` from `sources`.

        Args:
            archive_path: Destination file. Overwritten if it exists.
            sources: Maps an archive prefix to a source directory. The
                     empty prefix puts the directory's contents at the
                     archive root; "ios" nests them under ios/.

        Raises:
            OSError: On any read or write failure.
        """
        ...


class ZipArchiveWriter(ArchiveWriter):
    """
    Deflate-compressed ZIP.

    Entries are added in sorted path order so two archives of the same tree
    list their members identically.
    """

    extension = ".zip"

    def __init__(self, compresslevel: int = 9) -> None:
        self.compresslevel = compresslevel

    def write(self, archive_path: Path, sources: Mapping[str, Path]) -> None:
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(
            archive_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=self.compresslevel
        ) as zf:
            for prefix, source_dir in sources.items():
                for file_path in sorted(p for p in source_dir.rglob("*") if p.is_file()):
                    relative = relative_posix(file_path, source_dir)
                    arcname = f"{prefix}/{relative}" if prefix else relative
                    zf.write(file_path, arcname)
