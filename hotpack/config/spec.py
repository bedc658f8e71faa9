# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Resolved build description handed to the orchestrator.

HotpackConfig mirrors the file on disk: strings, relative paths, optional
values. BuildSpec is what remains after semantic validation: absolute paths,
a concrete version, a concrete entry file, de-duplicated platforms.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from hotpack.constants import DEFAULT_KEY_NAME, PACKAGES_DIRNAME


@dataclass(frozen=True)
class AssetPolicy:
    include: tuple[str, ...] = ("assets/**/*",)
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class PackagePolicy:
    enabled: bool = True
    separate: bool = True
    naming_template: str = "{platform}-v{version}-{timestamp}"


@dataclass(frozen=True)
class SignaturePolicy:
    """
    How manifests get signed.

    When `auto_generate` is false, `private_key_path` points to readable key
    material; the validator guarantees this before any build starts. When it
    is true and `private_key_path` is None, a key pair is generated into
    `key_directory` on first use.
    """

    enabled: bool
    algorithm: str
    key_size: int
    private_key_path: Optional[Path]
    public_key_path: Optional[Path]
    auto_generate: bool
    key_directory: Path
    key_name: str = DEFAULT_KEY_NAME


@dataclass(frozen=True)
class BuildSpec:
    platforms: tuple[str, ...]
    version: str
    project_root: Path
    output_root: Path
    bundle_name: str = "index"
    entry_file: str = "index.js"
    sourcemap: bool = False
    minify: bool = True
    min_app_version: str = "1.0.0"
    strict_assets: bool = False
    max_workers: int = 1
    assets: AssetPolicy = field(default_factory=AssetPolicy)
    packaging: PackagePolicy = field(default_factory=PackagePolicy)
    signature: Optional[SignaturePolicy] = None
    warnings: tuple[str, ...] = ()
    log_file: Optional[Path] = None
    log_level: str = "INFO"

    def platform_dir(self, platform: str) -> Path:
        return self.output_root / platform

    @property
    def packages_dir(self) -> Path:
        return self.output_root / PACKAGES_DIRNAME

    @property
    def signing_enabled(self) -> bool:
        return self.signature is not None and self.signature.enabled
