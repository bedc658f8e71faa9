# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Bundle producers.

The orchestrator doesn't know how a JavaScript bundle comes into existence.
It hands a BundleRequest to a BundleProducer and gets back the bundle file
and the directory the bundler put its assets in.

ReactNativeBundleProducer runs `npx react-native bundle` in the project
directory. It passes arguments as a list and never goes through a shell on
POSIX. Windows needs npx.cmd.
"""

import os
import subprocess
import sys
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from hotpack.errors import BundlerError
from hotpack.logging.logger import get_logger

_logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 900
_OUTPUT_TAIL_CHARS = 2000


@dataclass(frozen=True)
class BundleRequest:
    """Everything a bundler needs for one platform."""

    project_root: Path
    entry_file: str
    platform: str
    bundle_path: Path
    assets_dir: Path
    sourcemap_path: Optional[Path] = None
    minify: bool = True
    dev: bool = False
    reset_cache: bool = False


@dataclass(frozen=True)
class BundleOutput:
    bundle_path: Path
    assets_dir: Path
    sourcemap_path: Optional[Path] = None


class BundleProducer(ABC):
    """Produces a JavaScript bundle plus its asset directory."""

    @abstractmethod
    def produce(self, request: BundleRequest) -> BundleOutput:
        """
        Build the bundle described by `request`.

        Raises:
            BundlerError: If the bundler fails or its output is unusable.
        """
        ...


def validate_bundle(bundle_path: Path) -> None:
    """
    Make sure the bundler actually produced something.

    Raises:
        BundlerError: If the bundle is missing or empty.
    """
    if not bundle_path.is_file():
        raise BundlerError(f"Bundle not found: {bundle_path}")
    if bundle_path.stat().st_size == 0:
        raise BundlerError(f"Bundle is empty: {bundle_path}")


def _tail(text: str) -> str:
    return text[-_OUTPUT_TAIL_CHARS:] if text else ""


class ReactNativeBundleProducer(BundleProducer):
    """Runs the React Native CLI bundler through npx."""

    def __init__(self, timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.timeout_seconds = timeout_seconds

    @staticmethod
    def command(request: BundleRequest) -> list[str]:
        """The argv for one bundling run."""
        npx = "npx.cmd" if sys.platform == "win32" else "npx"
        args = [
            npx,
            "react-native",
            "bundle",
            "--entry-file",
            request.entry_file,
            "--platform",
            request.platform,
            "--bundle-output",
            str(request.bundle_path),
            "--assets-dest",
            str(request.assets_dir),
            "--dev",
            str(request.dev).lower(),
            "--minify",
            str(request.minify).lower(),
        ]
        if request.reset_cache:
            args.append("--reset-cache")
        if request.sourcemap_path is not None:
            args.extend(["--sourcemap-output", str(request.sourcemap_path)])
        return args

    def produce(self, request: BundleRequest) -> BundleOutput:
        request.bundle_path.parent.mkdir(parents=True, exist_ok=True)
        request.assets_dir.mkdir(parents=True, exist_ok=True)

        args = self.command(request)
        start = time.monotonic()
        _logger.info(
            "Bundling",
            extra={"platform": request.platform, "entry_file": request.entry_file},
        )

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                cwd=str(request.project_root),
                env=dict(os.environ),
            )
        except subprocess.TimeoutExpired as err:
            raise BundlerError(
                f"Bundler timed out after {self.timeout_seconds}s for {request.platform}"
            ) from err
        except FileNotFoundError as err:
            raise BundlerError(f"{args[0]} not found. Is Node.js installed?") from err

        elapsed = time.monotonic() - start
        _logger.debug(
            "Bundler finished",
            extra={
                "platform": request.platform,
                "exit_code": result.returncode,
                "elapsed_seconds": round(elapsed, 3),
            },
        )

        if result.returncode != 0:
            raise BundlerError(
                f"Bundle build failed with code {result.returncode}: "
                f"{_tail(result.stderr) or _tail(result.stdout)}",
                exit_code=result.returncode,
            )

        validate_bundle(request.bundle_path)
        return BundleOutput(
            bundle_path=request.bundle_path,
            assets_dir=request.assets_dir,
            sourcemap_path=request.sourcemap_path,
        )
