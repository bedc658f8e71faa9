# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for matching bundle image references against catalogued assets.
"""

from pathlib import Path

from hotpack.assets.catalog import AssetRecord
from hotpack.assets.consistency import AssetConsistencyChecker, find_references, reference_stem


def _record(name: str) -> AssetRecord:
    return AssetRecord(name=name, type="png", url=f"assets/{name}", scales=(1,), hash="0", sha256="0")


class TestFindReferences:
    def test_require_and_import(self) -> None:
        text = (
            "const a = require('./img/a.png');\n"
            'import b from "../img/b.jpg";\n'
            "const again = require('./img/a.png');\n"
            "const data = require('./data.json');\n"
        )
        assert find_references(text) == ["./img/a.png", "../img/b.jpg"]

    def test_reference_stem_drops_density_suffix(self) -> None:
        assert reference_stem("./img/logo@2x.png") == "logo"
        assert reference_stem("icons\\close@1.5x.webp") == "close"


class TestVerify:
    def test_consistent_bundle(self) -> None:
        checker = AssetConsistencyChecker()
        text = "require('./assets/logo@3x.png')"
        assert checker.verify(text, [_record("logo.png")]) == []

    def test_unmatched_reference(self) -> None:
        checker = AssetConsistencyChecker()
        warnings = checker.verify("require('./assets/missing.png')", [_record("logo.png")])
        assert warnings == [
            "Asset referenced in bundle but not found in bundler output: ./assets/missing.png"
        ]

    def test_bundle_file(self, tmp_path: Path) -> None:
        bundle = tmp_path / "index.ios.bundle"
        bundle.write_bytes(b"require('./a.png');\xff\xfe")
        assert AssetConsistencyChecker().verify_bundle_file(bundle, []) == [
            "Asset referenced in bundle but not found in bundler output: ./a.png"
        ]
