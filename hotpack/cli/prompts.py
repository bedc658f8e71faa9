# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Interactive questions for `hotpack build`.

The answers are turned into the same raw config mapping a config file would
produce, so an interactive build goes through exactly the validation a
file-driven one does. `input_fn` is injectable for tests.
"""

import json
import re
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from hotpack.config.schema import normalize_semver
from hotpack.constants import SUPPORTED_PLATFORMS

InputFn = Callable[[str], str]

BUMP_PARTS: tuple[str, ...] = ("patch", "minor", "major")
DEFAULT_OUTPUT = "./hotupdate-build"
DEFAULT_BUNDLE_NAME = "index"

_CORE = re.compile(r"^(\d+)\.(\d+)\.(\d+)")
_YES = {"y", "yes"}
_NO = {"n", "no"}


def bump_version(version: str, part: str) -> str:
    """
    Increment one component of a semantic version.

    Lower components reset to zero and pre-release or build suffixes are
    dropped. A patch bump of a pre-release only drops the suffix:
    1.0.0-beta.1 becomes 1.0.0.
    """
    normalized = normalize_semver(version)
    match = _CORE.match(normalized)
    if match is None or part not in BUMP_PARTS:
        raise ValueError(f"Cannot bump {part!r} of version {version!r}")

    major, minor, patch = (int(g) for g in match.groups())
    prerelease = normalized[match.end():].startswith("-")

    if part == "major":
        return f"{major + 1}.0.0"
    if part == "minor":
        return f"{major}.{minor + 1}.0"
    if prerelease:
        return f"{major}.{minor}.{patch}"
    return f"{major}.{minor}.{patch + 1}"


def ask(input_fn: InputFn, question: str, default: Optional[str] = None) -> str:
    """Free-text question. An empty answer takes the default."""
    suffix = f" [{default}]" if default is not None else ""
    while True:
        answer = input_fn(f"{question}{suffix}: ").strip()
        if answer:
            return answer
        if default is not None:
            return default


def ask_bool(input_fn: InputFn, question: str, default: bool) -> bool:
    hint = "Y/n" if default else "y/N"
    while True:
        answer = input_fn(f"{question} ({hint}): ").strip().lower()
        if not answer:
            return default
        if answer in _YES:
            return True
        if answer in _NO:
            return False


def ask_choice(input_fn: InputFn, question: str, choices: Sequence[str], default: str) -> str:
    """Pick one of `choices` by name or 1-based number."""
    listing = ", ".join(f"{i}) {c}" for i, c in enumerate(choices, start=1))
    while True:
        answer = ask(input_fn, f"{question} ({listing})", default)
        if answer in choices:
            return answer
        if answer.isdigit() and 1 <= int(answer) <= len(choices):
            return choices[int(answer) - 1]


def ask_platforms(input_fn: InputFn) -> list[str]:
    """Comma-separated platforms; re-asks until every entry is supported."""
    default = ",".join(SUPPORTED_PLATFORMS)
    while True:
        answer = ask(input_fn, "Platforms to build", default)
        platforms = [p.strip().lower() for p in answer.split(",") if p.strip()]
        if platforms and all(p in SUPPORTED_PLATFORMS for p in platforms):
            return list(dict.fromkeys(platforms))


def _package_json(directory: Path) -> Optional[dict[str, Any]]:
    try:
        data = json.loads((directory / "package.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _is_react_native(directory: Path) -> bool:
    data = _package_json(directory)
    if data is None:
        return False
    deps = {**(data.get("dependencies") or {}), **(data.get("devDependencies") or {})}
    return "react-native" in deps


def detect_project_path(start: Path) -> Optional[Path]:
    """Nearest directory at or above `start` holding a React Native package.json."""
    start = start.resolve()
    for directory in (start, *start.parents):
        if _is_react_native(directory):
            return directory
    return None


def _current_version(project: Path) -> str:
    data = _package_json(project) or {}
    try:
        return normalize_semver(str(data.get("version", "1.0.0")))
    except ValueError:
        return "1.0.0"


def collect_build_answers(input_fn: InputFn, cwd: Path) -> Optional[dict[str, Any]]:
    """
    Ask every build question.

    Returns:
        A raw config mapping, or None when the final confirmation is declined.
    """
    detected = detect_project_path(cwd)
    project = Path(ask(input_fn, "React Native project path", str(detected or cwd)))
    if not project.is_absolute():
        project = cwd / project

    platforms = ask_platforms(input_fn)

    current = _current_version(project)
    choice = ask_choice(
        input_fn,
        f"Version (current {current})",
        ("current", *BUMP_PARTS, "custom"),
        "patch",
    )
    if choice == "current":
        version = current
    elif choice == "custom":
        version = ask(input_fn, "Custom version")
    else:
        version = bump_version(current, choice)

    bundle_name = ask(input_fn, "Bundle name", DEFAULT_BUNDLE_NAME)
    output_path = ask(input_fn, "Output directory", DEFAULT_OUTPUT)
    sourcemap = ask_bool(input_fn, "Generate source maps?", False)
    minify = ask_bool(input_fn, "Minify bundles?", True)

    if not ask_bool(input_fn, f"Build {', '.join(platforms)} v{version}?", True):
        return None

    return {
        "project": {"path": str(project)},
        "build": {
            "platforms": platforms,
            "version": version,
            "output_path": output_path,
            "bundle_name": bundle_name,
            "sourcemap": sourcemap,
            "minify": minify,
        },
    }
