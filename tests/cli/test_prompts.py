# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Tests for the interactive build questions."""

from pathlib import Path
from typing import Callable, Iterable

import pytest

from hotpack.cli.prompts import (
    ask_bool,
    ask_choice,
    ask_platforms,
    bump_version,
    collect_build_answers,
    detect_project_path,
)


class _Script:
    """Scripted input that records every prompt it was shown."""

    def __init__(self, answers: Iterable[str]) -> None:
        self._answers = iter(answers)
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return next(self._answers)


class TestBumpVersion:
    @pytest.mark.parametrize(
        "version,part,expected",
        [
            ("1.2.3", "patch", "1.2.4"),
            ("1.2.3", "minor", "1.3.0"),
            ("1.2.3", "major", "2.0.0"),
            ("1.0.0-beta.1", "patch", "1.0.0"),
            ("1.0.0-beta.1", "minor", "1.1.0"),
            ("1.2.3+build-7", "patch", "1.2.4"),
        ],
    )
    def test_bumps(self, version: str, part: str, expected: str) -> None:
        assert bump_version(version, part) == expected

    def test_unknown_part(self) -> None:
        with pytest.raises(ValueError):
            bump_version("1.2.3", "micro")

    def test_not_a_version(self) -> None:
        with pytest.raises(ValueError):
            bump_version("banana", "patch")


class TestQuestions:
    def test_bool_reasks_until_understood(self) -> None:
        script = _Script(["maybe", "YES"])
        assert ask_bool(script, "Continue?", False) is True
        assert len(script.prompts) == 2

    def test_bool_default(self) -> None:
        assert ask_bool(_Script([""]), "Continue?", True) is True

    def test_choice_by_number(self) -> None:
        assert ask_choice(_Script(["3"]), "Pick", ("a", "b", "c"), "a") == "c"

    def test_choice_rejects_out_of_range(self) -> None:
        assert ask_choice(_Script(["9", "b"]), "Pick", ("a", "b"), "a") == "b"

    def test_platforms_deduplicated(self) -> None:
        assert ask_platforms(_Script(["Android, ios, android"])) == ["android", "ios"]

    def test_platforms_reasks_on_unknown(self) -> None:
        script = _Script(["ios,web", "ios"])
        assert ask_platforms(script) == ["ios"]
        assert len(script.prompts) == 2


class TestDetectProject:
    def test_finds_enclosing_project(self, rn_project: Path) -> None:
        nested = rn_project / "src" / "screens"
        nested.mkdir(parents=True)
        assert detect_project_path(nested) == rn_project.resolve()

    def test_none_outside_project(self, tmp_path: Path) -> None:
        assert detect_project_path(tmp_path) is None


class TestCollectAnswers:
    def test_defaults(self, rn_project: Path) -> None:
        script = _Script(["", "", "", "", "", "", "", ""])
        answers = collect_build_answers(script, rn_project)

        assert answers is not None
        assert answers["project"]["path"] == str(rn_project.resolve())
        assert answers["build"] == {
            "platforms": ["ios", "android"],
            "version": "1.2.4",
            "output_path": "./hotupdate-build",
            "bundle_name": "index",
            "sourcemap": False,
            "minify": True,
        }

    def test_custom_version(self, rn_project: Path) -> None:
        script = _Script([str(rn_project), "android", "custom", "3.0.0-rc.1", "main", "dist", "y", "n", "y"])
        answers = collect_build_answers(script, rn_project)

        assert answers is not None
        assert answers["build"]["version"] == "3.0.0-rc.1"
        assert answers["build"]["bundle_name"] == "main"
        assert answers["build"]["sourcemap"] is True
        assert answers["build"]["minify"] is False

    def test_relative_project_path(self, rn_project: Path, tmp_path: Path) -> None:
        script = _Script(["app", "ios", "current", "", "", "", "", "y"])
        answers = collect_build_answers(script, tmp_path)

        assert answers is not None
        assert answers["project"]["path"] == str(tmp_path / "app")
        assert answers["build"]["version"] == "1.2.3"

    def test_declined(self, rn_project: Path) -> None:
        script = _Script(["", "", "", "", "", "", "", "n"])
        assert collect_build_answers(script, rn_project) is None
