# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Semantic validation: turns a schema-valid HotpackConfig into a BuildSpec.

The schema already guarantees types, known platforms, known algorithms and
well-formed versions. What's left needs the filesystem:
  - the project directory exists and is a React Native project
  - the version falls back to package.json when the config has none
  - the entry file is probed when the config has none
  - signing key material is readable, or generation is allowed

Validation only reads. It never creates directories, keys or log files,
which is what makes `build-config --dry-run` safe.
"""

import json
import os
from pathlib import Path
from typing import Any, Mapping

from hotpack.config.exceptions import ConfigValidationError
from hotpack.config.loader import parse_config
from hotpack.config.schema import HotpackConfig, SignatureConfig, normalize_semver
from hotpack.config.spec import AssetPolicy, BuildSpec, PackagePolicy, SignaturePolicy
from hotpack.constants import DEFAULT_KEY_SIZES, KEYS_DIRNAME, algorithm_family
from hotpack.logging.logger import get_logger

_logger = get_logger(__name__)

DEFAULT_VERSION = "1.0.0"
ENTRY_FILE_CANDIDATES: tuple[str, ...] = ("index.js", "index.ts", "index.jsx", "index.tsx")
REACT_NATIVE_MARKERS: tuple[str, ...] = ("react-native", "@react-native-community/cli")


def _resolve(base_dir: Path, value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _read_package_json(project_root: Path) -> dict[str, Any]:
    package_json = project_root / "package.json"
    if not package_json.is_file():
        raise ConfigValidationError(
            f"package.json not found in project: {project_root}", field="project.path"
        )
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        raise ConfigValidationError(
            f"Cannot read {package_json}: {err}", field="project.path"
        ) from err
    if not isinstance(data, dict):
        raise ConfigValidationError(
            f"{package_json} must contain a JSON object", field="project.path"
        )
    return data


def _is_react_native(package_data: Mapping[str, Any]) -> bool:
    dependencies: dict[str, Any] = {}
    for section in ("dependencies", "devDependencies"):
        value = package_data.get(section)
        if isinstance(value, dict):
            dependencies.update(value)
    return any(marker in dependencies for marker in REACT_NATIVE_MARKERS)


def _resolve_version(config: HotpackConfig, package_data: Mapping[str, Any]) -> str:
    if config.build.version:
        return config.build.version
    package_version = package_data.get("version")
    if not package_version:
        return DEFAULT_VERSION
    try:
        return normalize_semver(str(package_version))
    except ValueError as err:
        raise ConfigValidationError(
            f"package.json version is not usable: {err}", field="build.version"
        ) from err


def _resolve_entry_file(config: HotpackConfig, project_root: Path) -> str:
    if config.project.entry_file:
        return config.project.entry_file
    for candidate in ENTRY_FILE_CANDIDATES:
        if (project_root / candidate).is_file():
            return candidate
    return ENTRY_FILE_CANDIDATES[0]


def _is_readable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


def _resolve_signature(
    sig: SignatureConfig,
    base_dir: Path,
    output_root: Path,
    warnings: list[str],
) -> SignaturePolicy:
    """
    Resolve key paths and decide between loading and generating a key.

    A configured private key that can't be read is a warning when generation
    is allowed, and fatal otherwise.
    """
    key_size = sig.key_size or DEFAULT_KEY_SIZES[algorithm_family(sig.algorithm)]
    key_directory = (
        _resolve(base_dir, sig.key_directory) if sig.key_directory else output_root / KEYS_DIRNAME
    )
    private_key = _resolve(base_dir, sig.private_key_path) if sig.private_key_path else None
    public_key = _resolve(base_dir, sig.public_key_path) if sig.public_key_path else None

    if private_key is not None and not _is_readable_file(private_key):
        if sig.auto_generate:
            message = f"Private key not found: {private_key}. Will be auto-generated."
            warnings.append(message)
            _logger.warning(message, extra={"field": "signature.private_key_path"})
            private_key = None
            public_key = None
        else:
            raise ConfigValidationError(
                f"Private key not readable: {private_key}",
                field="signature.private_key_path",
            )

    if private_key is None and not sig.auto_generate:
        raise ConfigValidationError(
            "Signing is enabled but no private key is configured and auto_generate is off",
            field="signature.private_key_path",
        )

    return SignaturePolicy(
        enabled=True,
        algorithm=sig.algorithm,
        key_size=key_size,
        private_key_path=private_key,
        public_key_path=public_key,
        auto_generate=sig.auto_generate,
        key_directory=key_directory,
        key_name=sig.key_name,
    )


def validate_config(config: HotpackConfig, base_dir: Path | None = None) -> BuildSpec:
    """
    Check a loaded config against the filesystem and resolve it into a BuildSpec.

    Args:
        config: Schema-valid config.
        base_dir: Directory relative paths are resolved against. The config
                  file's directory for build-config, the working directory
                  for flag-driven builds.

    Returns:
        A BuildSpec with absolute paths and concrete values. Non-fatal
        findings are carried in `warnings`.

    Raises:
        ConfigValidationError: With `field` naming the offending key.
    """
    base_dir = (base_dir or Path.cwd()).resolve()
    warnings: list[str] = []

    project_root = _resolve(base_dir, config.project.path)
    if not project_root.is_dir():
        raise ConfigValidationError(
            f"Project path does not exist: {project_root}", field="project.path"
        )

    package_data = _read_package_json(project_root)
    if not _is_react_native(package_data):
        raise ConfigValidationError(
            f"Not a React Native project: {project_root}", field="project.path"
        )

    version = _resolve_version(config, package_data)
    output_root = _resolve(base_dir, config.build.output_path)
    platforms = tuple(dict.fromkeys(config.build.platforms))

    signature = None
    if config.signature.enabled:
        signature = _resolve_signature(config.signature, base_dir, output_root, warnings)

    log_file = _resolve(base_dir, config.logging.file) if config.logging.file else None

    spec = BuildSpec(
        platforms=platforms,
        version=version,
        project_root=project_root,
        output_root=output_root,
        bundle_name=config.build.bundle_name,
        entry_file=_resolve_entry_file(config, project_root),
        sourcemap=config.build.sourcemap,
        minify=config.build.minify,
        min_app_version=config.build.min_app_version,
        strict_assets=config.build.strict_assets,
        max_workers=config.build.max_workers,
        assets=AssetPolicy(
            include=tuple(config.assets.include),
            exclude=tuple(config.assets.exclude),
        ),
        packaging=PackagePolicy(
            enabled=config.package.enabled,
            separate=config.package.separate,
            naming_template=config.package.naming_template,
        ),
        signature=signature,
        warnings=tuple(warnings),
        log_file=log_file,
        log_level=config.logging.level,
    )

    _logger.debug(
        "Config validated",
        extra={
            "platforms": list(spec.platforms),
            "version": spec.version,
            "project": str(spec.project_root),
            "output": str(spec.output_root),
            "signing": spec.signing_enabled,
        },
    )
    return spec


def validate_raw(raw_data: Mapping[str, Any], base_dir: Path | None = None) -> BuildSpec:
    """Schema-check and semantically validate an in-memory config mapping."""
    return validate_config(parse_config(raw_data), base_dir)


_EXAMPLE_CONFIG = """\
# hotpack configuration
# Paths are relative to this file.

project:
  path: ./
  entry_file: index.js

build:
  platforms: [ios, android]
  # Falls back to package.json when omitted.
  version: 1.0.0
  output_path: ./hotupdate-build
  bundle_name: index
  sourcemap: false
  minify: true
  min_app_version: 1.0.0
  # Fail a platform when the bundle references images that weren't produced.
  strict_assets: false
  max_workers: 1

assets:
  include:
    - assets/**/*
  exclude:
    - node_modules/**
    - "**/.DS_Store"

package:
  enabled: true
  # false also produces one archive holding every platform.
  separate: true
  naming_template: "{platform}-v{version}-{timestamp}"

signature:
  enabled: true
  algorithm: RSA-SHA256
  key_size: 2048
  private_key_path: ./keys/hotupdate_private.pem
  public_key_path: ./keys/hotupdate_public.pem
  # Generate a key pair when the private key above is missing.
  auto_generate: true

logging:
  level: INFO

metadata:
  description: Hot update configuration for MyApp
  author: Your Name
  homepage: https://github.com/yourusername/yourapp
"""


def render_example_config() -> str:
    """Commented example config written by `hotpack config init`."""
    return _EXAMPLE_CONFIG
