# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for build output cleanup.
"""

from pathlib import Path

from hotpack.release.cleaner import clean_output, plan_clean


def _output(root: Path) -> Path:
    (root / "ios" / "bundles").mkdir(parents=True)
    (root / "ios" / "bundles" / "index.ios.bundle").write_bytes(b"x" * 100)
    (root / "packages").mkdir()
    (root / "packages" / "ios-v1.0.0-2026-10-18.zip").write_bytes(b"z" * 50)
    (root / "packages" / ".hotpack_tmp_abc.tmp").write_bytes(b"t" * 5)
    (root / "BUILD_SUMMARY.md").write_text("# summary\n", encoding="utf-8")
    return root


class TestPlan:
    def test_packages_kept_by_default(self, tmp_path: Path) -> None:
        remove, keep = plan_clean(_output(tmp_path))
        assert [p.name for p in remove] == ["BUILD_SUMMARY.md", "ios"]
        assert [p.name for p in keep] == ["packages"]

    def test_remove_packages(self, tmp_path: Path) -> None:
        remove, keep = plan_clean(_output(tmp_path), remove_packages=True)
        assert "packages" in [p.name for p in remove]
        assert keep == []

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert plan_clean(tmp_path / "nope") == ([], [])


class TestClean:
    def test_removes_artifacts_and_temp_files(self, tmp_path: Path) -> None:
        root = _output(tmp_path)
        result = clean_output(root)

        assert not (root / "ios").exists()
        assert not (root / "BUILD_SUMMARY.md").exists()
        assert (root / "packages" / "ios-v1.0.0-2026-10-18.zip").is_file()
        assert not (root / "packages" / ".hotpack_tmp_abc.tmp").exists()
        assert result.removed_dirs == 1
        assert result.removed_files == 2
        assert result.freed_bytes == 100 + len("# summary\n") + 5
        assert result.errors == []

    def test_remove_everything(self, tmp_path: Path) -> None:
        root = _output(tmp_path)
        result = clean_output(root, remove_packages=True)

        assert list(root.iterdir()) == []
        assert result.removed_dirs == 2

    def test_nothing_to_clean(self, tmp_path: Path) -> None:
        result = clean_output(tmp_path / "nope")
        assert (result.removed_dirs, result.removed_files, result.freed_bytes) == (0, 0, 0)
