# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for hotpack tests.

Fixtures here are available to every test file automatically. The fake
bundler stands in for `npx react-native bundle`, so no test needs Node.js.
"""

import json
import textwrap
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

import pytest

from hotpack.build.bundler import BundleOutput, BundleProducer, BundleRequest
from hotpack.config.spec import BuildSpec
from hotpack.config.validator import validate_raw
from hotpack.errors import BundlerError

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32

DEFAULT_BUNDLE_TEXT = textwrap.dedent("""\
    var logo = require('./assets/logo.png');
    console.log("hello hot update");
""")


class FakeBundleProducer(BundleProducer):
    """
    Writes a fixed bundle and a logo image instead of running the bundler.

    Android gets the image in drawable-mdpi and drawable-xhdpi, iOS gets it
    flat, the way the real bundler lays them out.
    """

    def __init__(
        self,
        bundle_text: str = DEFAULT_BUNDLE_TEXT,
        fail_platforms: Iterable[str] = (),
        images: Iterable[str] = ("logo.png",),
    ) -> None:
        self.bundle_text = bundle_text
        self.fail_platforms = set(fail_platforms)
        self.images = tuple(images)
        self.requests: list[BundleRequest] = []
        self._lock = threading.Lock()

    def produce(self, request: BundleRequest) -> BundleOutput:
        with self._lock:
            self.requests.append(request)
        if request.platform in self.fail_platforms:
            raise BundlerError(f"bundler exploded for {request.platform}", exit_code=1)

        request.bundle_path.parent.mkdir(parents=True, exist_ok=True)
        request.bundle_path.write_text(self.bundle_text, encoding="utf-8")
        if request.sourcemap_path is not None:
            request.sourcemap_path.write_text('{"version":3}', encoding="utf-8")

        if request.platform == "android":
            targets = [request.assets_dir / "drawable-mdpi", request.assets_dir / "drawable-xhdpi"]
        else:
            targets = [request.assets_dir]
        for target in targets:
            target.mkdir(parents=True, exist_ok=True)
            for image in self.images:
                (target / image).write_bytes(PNG_BYTES)

        return BundleOutput(
            bundle_path=request.bundle_path,
            assets_dir=request.assets_dir,
            sourcemap_path=request.sourcemap_path,
        )


def write_rn_project(root: Path, version: str = "1.2.3", react_native: bool = True) -> Path:
    """A minimal React Native project layout."""
    root.mkdir(parents=True, exist_ok=True)
    dependencies = {"react": "18.2.0"}
    if react_native:
        dependencies["react-native"] = "0.72.0"
    (root / "package.json").write_text(
        json.dumps({"name": "demo", "version": version, "dependencies": dependencies}),
        encoding="utf-8",
    )
    (root / "index.js").write_text("import App from './App';\n", encoding="utf-8")
    assets = root / "assets"
    assets.mkdir(exist_ok=True)
    (assets / "splash.png").write_bytes(PNG_BYTES)
    (assets / "NOTES.md").write_text("not shipped\n", encoding="utf-8")
    return root


@pytest.fixture()
def rn_project(tmp_path: Path) -> Path:
    return write_rn_project(tmp_path / "app")


@pytest.fixture()
def fake_producer_factory() -> type[FakeBundleProducer]:
    return FakeBundleProducer


@pytest.fixture()
def make_spec(rn_project: Path, tmp_path: Path) -> Callable[..., BuildSpec]:
    """
    Build a BuildSpec for `rn_project`, writing into tmp_path/out.

    Keyword arguments are merged into the corresponding config sections.
    """

    def _make(
        build: Optional[dict[str, Any]] = None,
        package: Optional[dict[str, Any]] = None,
        signature: Optional[dict[str, Any]] = None,
        assets: Optional[dict[str, Any]] = None,
    ) -> BuildSpec:
        raw: dict[str, Any] = {
            "project": {"path": str(rn_project)},
            "build": {"output_path": str(tmp_path / "out"), **(build or {})},
        }
        if package is not None:
            raw["package"] = package
        if signature is not None:
            raw["signature"] = signature
        if assets is not None:
            raw["assets"] = assets
        return validate_raw(raw, tmp_path)

    return _make


@pytest.fixture()
def config_file(tmp_path: Path, rn_project: Path) -> Path:
    """A config file next to the project, using relative paths."""
    content = textwrap.dedent("""\
        project:
          path: ./app
        build:
          platforms: [ios, android]
          output_path: ./out
        signature:
          enabled: false
    """)
    path = tmp_path / "hotpack.config.yaml"
    path.write_text(content, encoding="utf-8")
    return path
