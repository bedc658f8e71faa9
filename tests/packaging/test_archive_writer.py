# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the ZIP archive writer.
"""

import zipfile
from pathlib import Path

from hotpack.packaging.archive import ZipArchiveWriter


def _tree(root: Path) -> Path:
    (root / "bundles").mkdir(parents=True)
    (root / "bundles" / "index.ios.bundle").write_text("js", encoding="utf-8")
    (root / "manifest.json").write_text("{}", encoding="utf-8")
    (root / "assets").mkdir()
    (root / "assets" / "a.png").write_bytes(b"png")
    return root


class TestZipArchiveWriter:
    def test_contents_at_root(self, tmp_path: Path) -> None:
        source = _tree(tmp_path / "ios")
        archive = tmp_path / "out" / "ios.zip"

        ZipArchiveWriter().write(archive, {"": source})

        with zipfile.ZipFile(archive) as zf:
            assert zf.namelist() == ["assets/a.png", "bundles/index.ios.bundle", "manifest.json"]
            assert zf.read("bundles/index.ios.bundle") == b"js"
            assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in zf.infolist())

    def test_prefixed_sources(self, tmp_path: Path) -> None:
        ios = _tree(tmp_path / "ios")
        android = _tree(tmp_path / "android")
        archive = tmp_path / "combined.zip"

        ZipArchiveWriter().write(archive, {"ios": ios, "android": android})

        with zipfile.ZipFile(archive) as zf:
            names = zf.namelist()
        assert "ios/manifest.json" in names
        assert "android/bundles/index.ios.bundle" in names
        assert len(names) == 6

    def test_extension(self) -> None:
        assert ZipArchiveWriter.extension == ".zip"
