# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Cross-check image references in a built bundle against the asset catalog.

The bundler renames nothing important but may append density suffixes
("logo@2x.png") or hashes, so matching is by substring on the base name
rather than by exact file name.
"""

import re
from pathlib import Path, PurePosixPath
from typing import Iterable

from hotpack.assets.catalog import AssetRecord
from hotpack.logging.logger import get_logger

_logger = get_logger(__name__)

IMAGE_EXTENSIONS: tuple[str, ...] = ("png", "jpg", "jpeg", "gif", "webp", "svg")

_EXT_GROUP = "|".join(IMAGE_EXTENSIONS)
REFERENCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"""require\(\s*['"]([^'"]+\.(?:""" + _EXT_GROUP + r"""))['"]\s*\)"""),
    re.compile(r"""import\s+[^'"]+?\s+from\s+['"]([^'"]+\.(?:""" + _EXT_GROUP + r"""))['"]"""),
)

_DENSITY_SUFFIX = re.compile(r"@\d+(?:\.\d+)?x$")


def find_references(bundle_text: str) -> list[str]:
    """Distinct image paths referenced by the bundle, in first-seen order."""
    found: dict[str, None] = {}
    for pattern in REFERENCE_PATTERNS:
        for match in pattern.finditer(bundle_text):
            found.setdefault(match.group(1), None)
    return list(found)


def reference_stem(reference: str) -> str:
    """Base name without extension and without an @Nx density suffix."""
    stem = PurePosixPath(reference.replace("\\", "/")).stem
    return _DENSITY_SUFFIX.sub("", stem)


class AssetConsistencyChecker:
    """Reports bundle image references that no catalogued asset accounts for."""

    def verify(self, bundle_text: str, records: Iterable[AssetRecord]) -> list[str]:
        """
        Args:
            bundle_text: The bundle's JavaScript source.
            records: Everything the catalog produced for this platform.

        Returns:
            One warning per unmatched reference. Empty when consistent.
        """
        names = [record.name for record in records]
        references = find_references(bundle_text)
        warnings: list[str] = []

        for reference in references:
            stem = reference_stem(reference)
            if not any(stem in name for name in names):
                warnings.append(
                    f"Asset referenced in bundle but not found in bundler output: {reference}"
                )

        _logger.info(
            "Asset references checked",
            extra={"references": len(references), "unmatched": len(warnings)},
        )
        return warnings

    def verify_bundle_file(self, bundle_path: Path, records: Iterable[AssetRecord]) -> list[str]:
        """Same as `verify`, reading the bundle from disk. Undecodable bytes are replaced."""
        text = bundle_path.read_text(encoding="utf-8", errors="replace")
        return self.verify(text, records)
