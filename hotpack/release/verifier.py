# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Output verification: checks that a build directory is complete and intact.

For each platform directory found under the output root:
  - a non-empty bundle exists
  - manifest.json parses and has the required fields
  - the bundle and every asset still match their recorded SHA-256
  - a signed manifest verifies against its embedded public key
  - nothing that looks like a private key is present

Packages under packages/ must be non-empty. Everything is reported; the
verifier doesn't stop at the first failure.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from hotpack.constants import MANIFEST_FILENAME, PACKAGES_DIRNAME, SUPPORTED_PLATFORMS
from hotpack.logging.logger import get_logger
from hotpack.packaging.packager import BUNDLE_SUFFIXES
from hotpack.release.scanner import format_findings, scan_for_secrets
from hotpack.signing.signer import verify_manifest
from hotpack.utils.filesystem import read_json
from hotpack.utils.hashing import verify_checksum

_logger: logging.Logger = get_logger(__name__)

_REQUIRED_MANIFEST_FIELDS: frozenset[str] = frozenset(
    {
        "version",
        "platform",
        "bundleUrl",
        "bundleSize",
        "bundleHash",
        "bundleSHA256",
        "assets",
        "timestamp",
        "minAppVersion",
        "metadata",
    }
)


@dataclass(frozen=True)
class VerificationReport:
    """Complete outcome of an output directory verification."""

    is_valid: bool
    build_dir: str
    platforms: list[str] = field(default_factory=list)
    packages: list[str] = field(default_factory=list)
    checks_passed: list[str] = field(default_factory=list)
    checks_failed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _check_bundles(platform_dir: Path) -> tuple[bool, list[str]]:
    bundles_dir = platform_dir / "bundles"
    if not bundles_dir.is_dir():
        return False, ["No bundles directory found"]

    bundles = sorted(p for p in bundles_dir.iterdir() if p.suffix in BUNDLE_SUFFIXES)
    if not bundles:
        return False, ["No bundle file found"]

    errors = [f"Bundle is empty: {b.name}" for b in bundles if b.stat().st_size == 0]
    return len(errors) == 0, errors


def _load_manifest(platform_dir: Path) -> tuple[dict[str, Any] | None, list[str]]:
    manifest_path = platform_dir / MANIFEST_FILENAME
    try:
        data = read_json(manifest_path)
    except FileNotFoundError:
        return None, ["No manifest.json found"]
    except (OSError, ValueError) as err:
        return None, [f"Invalid manifest.json: {err}"]

    if not isinstance(data, dict):
        return None, ["manifest.json root is not a JSON object"]

    missing = _REQUIRED_MANIFEST_FIELDS - set(data.keys())
    if missing:
        return data, [f"Missing manifest fields: {', '.join(sorted(missing))}"]
    return data, []


def _check_hashes(platform_dir: Path, manifest: dict[str, Any]) -> tuple[bool, list[str]]:
    errors: list[str] = []

    bundle_path = platform_dir / str(manifest.get("bundleUrl", ""))
    if not bundle_path.is_file():
        errors.append(f"Bundle listed in manifest is missing: {manifest.get('bundleUrl')}")
    elif not verify_checksum(bundle_path, str(manifest.get("bundleSHA256", ""))):
        errors.append(f"Bundle hash mismatch: {manifest.get('bundleUrl')}")

    for asset in manifest.get("assets", []):
        url = str(asset.get("url", ""))
        asset_path = platform_dir / url
        if not asset_path.is_file():
            errors.append(f"Asset listed in manifest is missing: {url}")
        elif asset.get("sha256") and not verify_checksum(asset_path, str(asset["sha256"])):
            errors.append(f"Asset hash mismatch: {url}")

    return len(errors) == 0, errors


def verify_output(build_dir: Path) -> VerificationReport:
    """
    Run every check against a build output directory.

    Args:
        build_dir: The output root of a previous build.

    Returns:
        VerificationReport. `is_valid` is True only if no check failed.
    """
    if not build_dir.is_dir():
        return VerificationReport(
            is_valid=False,
            build_dir=str(build_dir),
            errors=[f"Build directory not found: {build_dir}"],
        )

    passed: list[str] = []
    failed: list[str] = []
    errors: list[str] = []

    platforms = [p for p in SUPPORTED_PLATFORMS if (build_dir / p).is_dir()]
    if not platforms:
        failed.append("platforms")
        errors.append("No platform builds found")

    for platform in platforms:
        platform_dir = build_dir / platform

        ok, errs = _check_bundles(platform_dir)
        (passed if ok else failed).append(f"{platform}:bundle")
        errors.extend(f"{platform}: {e}" for e in errs)

        manifest, errs = _load_manifest(platform_dir)
        (passed if not errs else failed).append(f"{platform}:manifest")
        errors.extend(f"{platform}: {e}" for e in errs)

        if manifest is not None and not errs:
            ok, errs = _check_hashes(platform_dir, manifest)
            (passed if ok else failed).append(f"{platform}:hashes")
            errors.extend(f"{platform}: {e}" for e in errs)

            if manifest.get("signature"):
                result = verify_manifest(platform_dir / MANIFEST_FILENAME)
                (passed if result.is_valid else failed).append(f"{platform}:signature")
                if not result.is_valid:
                    errors.append(f"{platform}: Signature invalid: {result.error}")

        findings = scan_for_secrets(platform_dir)
        (passed if not findings else failed).append(f"{platform}:secrets")
        if findings:
            errors.append(f"{platform}: {format_findings(findings)}")

    packages: list[str] = []
    packages_dir = build_dir / PACKAGES_DIRNAME
    if packages_dir.is_dir():
        for archive in sorted(packages_dir.glob("*.zip")):
            packages.append(archive.name)
            if archive.stat().st_size == 0:
                failed.append(f"package:{archive.name}")
                errors.append(f"Package is empty: {archive.name}")
            else:
                passed.append(f"package:{archive.name}")

    is_valid = len(failed) == 0
    _logger.info(
        "Output verification complete",
        extra={
            "build_dir": str(build_dir),
            "is_valid": is_valid,
            "passed": len(passed),
            "failed": len(failed),
        },
    )
    return VerificationReport(
        is_valid=is_valid,
        build_dir=str(build_dir),
        platforms=platforms,
        packages=packages,
        checks_passed=passed,
        checks_failed=failed,
        errors=errors,
    )
