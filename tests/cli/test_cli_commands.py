# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
In-process tests for the CLI handlers.

The real bundler is swapped for the fake one so the build commands run end
to end without Node.js. Prompts get a scripted input function.
"""

import json
from pathlib import Path
from typing import Callable, Iterable

import pytest

from hotpack.cli import commands
from hotpack.cli.exit_codes import FAILURE, SUCCESS
from hotpack.cli.main import build_parser
from hotpack.signing.signer import verify_manifest


def _scripted(answers: Iterable[str]) -> Callable[[str], str]:
    remaining = iter(answers)
    return lambda prompt: next(remaining)


def _eof(prompt: str) -> str:
    raise EOFError


@pytest.fixture()
def fake_bundler(monkeypatch: pytest.MonkeyPatch, fake_producer_factory: type) -> type:
    monkeypatch.setattr(commands, "ReactNativeBundleProducer", fake_producer_factory)
    return fake_producer_factory


class TestBuildCi:
    def test_successful_build(
        self, fake_bundler: type, rn_project: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        out = tmp_path / "out"
        args = build_parser().parse_args(
            ["build-ci", "-p", str(rn_project), "--platforms", "ios,android", "--output", str(out)]
        )
        assert args.func(args) == SUCCESS

        assert (out / "ios" / "manifest.json").is_file()
        assert (out / "android" / "manifest.json").is_file()
        assert (out / "BUILD_SUMMARY.md").is_file()
        assert "Summary written to" in capsys.readouterr().out

    def test_flags_map_onto_config(self, rn_project: Path) -> None:
        args = build_parser().parse_args(
            [
                "build-ci", "-p", str(rn_project), "--platforms", "android",
                "--version", "2.0.0", "--no-minify", "--combined",
                "--signature", "--signature-algorithm", "ECDSA-SHA384",
            ]
        )
        raw = commands.build_ci_config(args)

        assert raw["build"]["platforms"] == ["android"]
        assert raw["build"]["version"] == "2.0.0"
        assert raw["build"]["minify"] is False
        assert raw["package"] == {"enabled": True, "separate": False}
        assert raw["signature"]["algorithm"] == "ECDSA-SHA384"
        assert raw["signature"]["auto_generate"] is True

    def test_failed_platform_fails_command(
        self, monkeypatch: pytest.MonkeyPatch, fake_producer_factory: type, rn_project: Path, tmp_path: Path
    ) -> None:
        monkeypatch.setattr(
            commands,
            "ReactNativeBundleProducer",
            lambda: fake_producer_factory(fail_platforms={"android"}),
        )
        out = tmp_path / "out"
        args = build_parser().parse_args(["build-ci", "-p", str(rn_project), "--output", str(out)])

        assert args.func(args) == FAILURE
        assert (out / "ios" / "manifest.json").is_file()

    def test_signed_build_generates_keys(
        self, fake_bundler: type, rn_project: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        out = tmp_path / "out"
        args = build_parser().parse_args(
            [
                "build-ci", "-p", str(rn_project), "--platforms", "ios", "--output", str(out),
                "--signature", "--signature-algorithm", "ECDSA-SHA256",
            ]
        )
        assert args.func(args) == SUCCESS

        assert "Generated signing key" in capsys.readouterr().out
        assert (out / "keys" / "hotupdate_private.pem").is_file()
        assert verify_manifest(out / "ios" / "manifest.json").is_valid

    def test_non_react_native_project(self, tmp_path: Path) -> None:
        plain = tmp_path / "plain"
        plain.mkdir()
        (plain / "package.json").write_text(json.dumps({"name": "x"}), encoding="utf-8")
        args = build_parser().parse_args(["build-ci", "-p", str(plain)])

        assert args.func(args) == FAILURE


class TestInteractiveBuild:
    def test_answers_drive_the_build(
        self, fake_bundler: type, rn_project: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        args = build_parser().parse_args(["build"])
        answers = _scripted([str(rn_project), "ios", "minor", "", "", "", "", "y"])

        assert commands.handle_build(args, input_fn=answers) == SUCCESS

        manifest = json.loads(
            (tmp_path / "hotupdate-build" / "ios" / "manifest.json").read_text(encoding="utf-8")
        )
        assert manifest["version"] == "1.3.0"
        assert manifest["platform"] == "ios"

    def test_declined_confirmation_builds_nothing(
        self, fake_bundler: type, rn_project: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        args = build_parser().parse_args(["build"])
        answers = _scripted([str(rn_project), "ios", "current", "", "", "", "", "n"])

        assert commands.handle_build(args, input_fn=answers) == SUCCESS
        assert not (tmp_path / "hotupdate-build").exists()

    def test_closed_input_fails(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        args = build_parser().parse_args(["build"])

        assert commands.handle_build(args, input_fn=_eof) == FAILURE


class TestBuildConfig:
    def test_builds_from_file(self, fake_bundler: type, config_file: Path, tmp_path: Path) -> None:
        args = build_parser().parse_args(["build-config", "--config", str(config_file)])

        assert args.func(args) == SUCCESS
        assert (tmp_path / "out" / "android" / "manifest.json").is_file()

    def test_missing_config_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        args = build_parser().parse_args(["build-config"])

        assert args.func(args) == FAILURE


class TestOutputCommands:
    def _build(self, rn_project: Path, out: Path) -> None:
        args = build_parser().parse_args(["build-ci", "-p", str(rn_project), "--output", str(out)])
        assert args.func(args) == SUCCESS

    def test_validate_fresh_build(
        self, fake_bundler: type, rn_project: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        out = tmp_path / "out"
        self._build(rn_project, out)
        capsys.readouterr()

        args = build_parser().parse_args(["validate", "--build-path", str(out)])
        assert args.func(args) == SUCCESS
        assert "Build is valid" in capsys.readouterr().out

    def test_compare_lists_bundles(
        self, fake_bundler: type, rn_project: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        out = tmp_path / "out"
        self._build(rn_project, out)
        capsys.readouterr()

        args = build_parser().parse_args(["compare", "--build-path", str(out)])
        assert args.func(args) == SUCCESS
        printed = capsys.readouterr().out
        assert "index.ios.bundle" in printed
        assert "index.android.bundle" in printed
        assert "Difference" in printed

    def test_compare_without_bundles(self, tmp_path: Path) -> None:
        args = build_parser().parse_args(["compare", "--build-path", str(tmp_path)])
        assert args.func(args) == FAILURE

    def test_info_reports_builds(
        self, fake_bundler: type, rn_project: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        self._build(rn_project, rn_project / "hotupdate-build")
        capsys.readouterr()

        args = build_parser().parse_args(["info", "-p", str(rn_project)])
        assert args.func(args) == SUCCESS
        printed = capsys.readouterr().out
        assert "Version: 1.2.3" in printed
        assert "Platform builds: ios, android" in printed

    def test_info_ignores_keys_directory(
        self, fake_bundler: type, rn_project: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        out = tmp_path / "out"
        args = build_parser().parse_args(
            [
                "build-ci", "-p", str(rn_project), "--platforms", "ios", "--output", str(out),
                "--signature", "--signature-algorithm", "ECDSA-SHA256",
            ]
        )
        assert args.func(args) == SUCCESS
        assert (out / "keys").is_dir()
        capsys.readouterr()

        args = build_parser().parse_args(["info", "-p", str(rn_project), "--build-path", str(out)])
        assert args.func(args) == SUCCESS
        assert "Platform builds: ios\n" in capsys.readouterr().out


class TestClean:
    @pytest.fixture()
    def build_dir(self, tmp_path: Path) -> Path:
        root = tmp_path / "out"
        (root / "ios" / "bundles").mkdir(parents=True)
        (root / "ios" / "bundles" / "index.ios.bundle").write_text("x", encoding="utf-8")
        (root / "packages").mkdir()
        (root / "packages" / "ios.zip").write_bytes(b"PK")
        return root

    def test_declined_keeps_everything(self, build_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        args = build_parser().parse_args(["clean", "--build-path", str(build_dir)])

        assert commands.handle_clean(args, input_fn=_scripted(["n"])) == SUCCESS
        assert "Cancelled" in capsys.readouterr().out
        assert (build_dir / "ios").is_dir()

    def test_confirmed_keeps_packages(self, build_dir: Path) -> None:
        args = build_parser().parse_args(["clean", "--build-path", str(build_dir)])

        assert commands.handle_clean(args, input_fn=_scripted(["y"])) == SUCCESS
        assert not (build_dir / "ios").exists()
        assert (build_dir / "packages" / "ios.zip").is_file()

    def test_all_without_prompt(self, build_dir: Path) -> None:
        args = build_parser().parse_args(["clean", "--build-path", str(build_dir), "--all", "--yes"])

        assert commands.handle_clean(args, input_fn=_eof) == SUCCESS
        assert list(build_dir.iterdir()) == []

    def test_nothing_to_clean(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        args = build_parser().parse_args(["clean", "--build-path", str(tmp_path / "missing")])

        assert commands.handle_clean(args, input_fn=_eof) == SUCCESS
        assert "Nothing to clean" in capsys.readouterr().out


class TestSignatureHandlers:
    def test_verify_unsigned_manifest(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        manifest = tmp_path / "manifest.json"
        manifest.write_text(json.dumps({"version": "1.0.0"}), encoding="utf-8")
        args = build_parser().parse_args(["signature", "verify", "--manifest", str(manifest)])

        assert args.func(args) == FAILURE
        assert "MissingSignature" in capsys.readouterr().out

    def test_sign_with_missing_key(self, tmp_path: Path) -> None:
        manifest = tmp_path / "manifest.json"
        manifest.write_text(json.dumps({"version": "1.0.0"}), encoding="utf-8")
        args = build_parser().parse_args(
            ["signature", "sign", "--manifest", str(manifest), "--private-key", str(tmp_path / "nope.pem")]
        )

        assert args.func(args) == FAILURE
