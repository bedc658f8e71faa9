# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Build orchestrator: runs the hot-update pipeline once per platform.

Each platform walks the same stages in order:

    PENDING → BUNDLING → ASSET_COLLECTION → CONSISTENCY_CHECK
            → MANIFEST_GENERATION → SIGNING (optional) → PACKAGING → DONE

Any exception inside a platform's pipeline stops that platform only. It is
recorded in the platform's result with the stage it happened in, and the
remaining platforms carry on. One platform's bundler crash never costs
another platform its archive.

Platforms run one after another by default. With `max_workers > 1` they run
on a thread pool; every pipeline writes only inside its own platform
directory, and results are collected by the calling thread in request order.

Collaborators are injected: the bundler, the archive writer and the signing
key provider. Tests swap in fakes for the first two.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from hotpack.assets.catalog import AssetCatalog
from hotpack.assets.consistency import AssetConsistencyChecker
from hotpack.build.bundler import BundleProducer, BundleRequest, validate_bundle
from hotpack.config.spec import BuildSpec
from hotpack.errors import AssetConsistencyError, PackageError
from hotpack.logging.logger import get_logger
from hotpack.manifest.assembler import assemble, bundle_info, write_manifest
from hotpack.packaging.archive import ArchiveWriter
from hotpack.packaging.packager import PackageAssembler, PackageIndex, PackageInfo
from hotpack.release.scanner import format_findings, scan_for_secrets
from hotpack.signing.keys import SigningKeyProvider
from hotpack.signing.signer import sign_manifest_object

_logger: logging.Logger = get_logger(__name__)


class BuildStage(str, Enum):
    PENDING = "pending"
    BUNDLING = "bundling"
    ASSET_COLLECTION = "asset_collection"
    CONSISTENCY_CHECK = "consistency_check"
    MANIFEST_GENERATION = "manifest_generation"
    SIGNING = "signing"
    PACKAGING = "packaging"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildErrorInfo:
    """What went wrong, and where."""

    stage: BuildStage
    kind: str
    message: str


@dataclass(frozen=True)
class PlatformBuildResult:
    """
    Outcome of one platform's pipeline.

    `stage` is DONE on success and FAILED otherwise; `error.stage` records
    where a failure happened.
    """

    platform: str
    success: bool
    stage: BuildStage
    bundle_path: Optional[Path] = None
    assets_path: Optional[Path] = None
    manifest_path: Optional[Path] = None
    archive_path: Optional[Path] = None
    size: int = 0
    error: Optional[BuildErrorInfo] = None
    warnings: tuple[str, ...] = ()
    package: Optional[PackageInfo] = None


def run_succeeded(results: Sequence[PlatformBuildResult]) -> bool:
    """True only if there were results and every one of them reached DONE."""
    return bool(results) and all(r.stage is BuildStage.DONE for r in results)


@dataclass
class _PlatformRun:
    """Mutable progress of one platform, private to the thread running it."""

    platform: str
    stage: BuildStage = BuildStage.PENDING
    bundle_path: Optional[Path] = None
    assets_path: Optional[Path] = None
    manifest_path: Optional[Path] = None
    warnings: list[str] = field(default_factory=list)

    def advance(self, stage: BuildStage) -> None:
        self.stage = stage
        _logger.debug("Stage entered", extra={"platform": self.platform, "stage": stage.value})


class BuildOrchestrator:
    """
    Drives the per-platform pipelines of a build.

    Args:
        producer: Bundler backend.
        archive_writer: Archive backend; ZIP when omitted.
        key_provider: Signing key source shared by every platform of a run.
            When signing is enabled and none is given, one is created per
            `run` call from `spec.signature`.
    """

    def __init__(
        self,
        producer: BundleProducer,
        archive_writer: Optional[ArchiveWriter] = None,
        key_provider: Optional[SigningKeyProvider] = None,
    ) -> None:
        self.producer = producer
        self.archive_writer = archive_writer
        self.key_provider = key_provider
        self.checker = AssetConsistencyChecker()

    def _assembler(self, spec: BuildSpec) -> PackageAssembler:
        return PackageAssembler(
            spec.packages_dir,
            writer=self.archive_writer,
            naming_template=spec.packaging.naming_template,
        )

    def run(self, spec: BuildSpec) -> list[PlatformBuildResult]:
        """
        Build every platform in `spec`.

        Returns:
            Exactly one result per requested platform, in request order.
        """
        key_provider = self.key_provider
        if key_provider is None and spec.signature is not None and spec.signature.enabled:
            key_provider = SigningKeyProvider(spec.signature)

        catalog = AssetCatalog(spec.project_root)
        spec.output_root.mkdir(parents=True, exist_ok=True)

        _logger.info(
            "Build started",
            extra={
                "platforms": list(spec.platforms),
                "version": spec.version,
                "output": str(spec.output_root),
                "workers": spec.max_workers,
            },
        )

        if spec.max_workers > 1 and len(spec.platforms) > 1:
            workers = min(spec.max_workers, len(spec.platforms))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="hotpack") as pool:
                futures = [
                    pool.submit(self._build_platform, spec, platform, catalog, key_provider)
                    for platform in spec.platforms
                ]
                results = [future.result() for future in futures]
        else:
            results = [
                self._build_platform(spec, platform, catalog, key_provider)
                for platform in spec.platforms
            ]

        _logger.info(
            "Build finished",
            extra={
                "succeeded": sum(1 for r in results if r.success),
                "failed": sum(1 for r in results if not r.success),
            },
        )
        return results

    def _build_platform(
        self,
        spec: BuildSpec,
        platform: str,
        catalog: AssetCatalog,
        key_provider: Optional[SigningKeyProvider],
    ) -> PlatformBuildResult:
        progress = _PlatformRun(platform=platform)
        platform_dir = spec.platform_dir(platform)
        bundles_dir = platform_dir / "bundles"
        assets_dir = platform_dir / "assets"

        try:
            progress.advance(BuildStage.BUNDLING)
            request = BundleRequest(
                project_root=spec.project_root,
                entry_file=spec.entry_file,
                platform=platform,
                bundle_path=bundles_dir / f"{spec.bundle_name}.{platform}.bundle",
                assets_dir=assets_dir,
                sourcemap_path=(
                    bundles_dir / f"{spec.bundle_name}.{platform}.map" if spec.sourcemap else None
                ),
                minify=spec.minify,
            )
            output = self.producer.produce(request)
            validate_bundle(output.bundle_path)
            progress.bundle_path = output.bundle_path
            progress.assets_path = output.assets_dir

            progress.advance(BuildStage.ASSET_COLLECTION)
            output.assets_dir.mkdir(parents=True, exist_ok=True)
            generated = catalog.collect(output.assets_dir, platform)
            supplementary = catalog.collect_supplementary(output.assets_dir, spec.assets)
            collected = generated.merged(supplementary)
            progress.warnings.extend(collected.warnings)

            progress.advance(BuildStage.CONSISTENCY_CHECK)
            unmatched = self.checker.verify_bundle_file(output.bundle_path, collected.records)
            progress.warnings.extend(unmatched)
            for warning in unmatched:
                _logger.warning(warning, extra={"platform": platform})
            if unmatched and spec.strict_assets:
                raise AssetConsistencyError(
                    f"{len(unmatched)} asset reference(s) not found in bundler output",
                    warnings=unmatched,
                )

            progress.advance(BuildStage.MANIFEST_GENERATION)
            manifest = assemble(platform, bundle_info(output.bundle_path), collected.records, spec)

            if key_provider is not None:
                progress.advance(BuildStage.SIGNING)
                manifest = sign_manifest_object(manifest, key_provider.get())
                _logger.info(
                    "Manifest signed",
                    extra={"platform": platform, "algorithm": key_provider.algorithm},
                )

            progress.manifest_path = write_manifest(manifest, platform_dir)

            progress.advance(BuildStage.PACKAGING)
            findings = scan_for_secrets(platform_dir)
            if findings:
                raise PackageError(
                    f"Refusing to package {platform}: {format_findings(findings)}"
                )

            package: Optional[PackageInfo] = None
            if spec.packaging.enabled:
                assembler = self._assembler(spec)
                package = assembler.package_platform(platform_dir, platform, spec.version)
                if not assembler.validate(package.archive_path):
                    raise PackageError(f"Archive failed validation: {package.archive_path}")

            progress.advance(BuildStage.DONE)
            _logger.info(
                "Platform build completed",
                extra={
                    "platform": platform,
                    "archive": str(package.archive_path) if package else None,
                    "signed": manifest.is_signed,
                    "warnings": len(progress.warnings),
                },
            )
            return PlatformBuildResult(
                platform=platform,
                success=True,
                stage=BuildStage.DONE,
                bundle_path=progress.bundle_path,
                assets_path=progress.assets_path,
                manifest_path=progress.manifest_path,
                archive_path=package.archive_path if package else None,
                size=package.size if package else 0,
                warnings=tuple(progress.warnings),
                package=package,
            )

        except Exception as err:
            # One platform's failure must not reach its siblings.
            failed_stage = progress.stage
            _logger.error(
                "Platform build failed",
                extra={
                    "platform": platform,
                    "stage": failed_stage.value,
                    "error": str(err),
                },
                exc_info=True,
            )
            return PlatformBuildResult(
                platform=platform,
                success=False,
                stage=BuildStage.FAILED,
                bundle_path=progress.bundle_path,
                assets_path=progress.assets_path,
                manifest_path=progress.manifest_path,
                error=BuildErrorInfo(
                    stage=failed_stage, kind=type(err).__name__, message=str(err)
                ),
                warnings=tuple(progress.warnings),
            )

    def finalize(
        self, spec: BuildSpec, results: Sequence[PlatformBuildResult]
    ) -> Optional[PackageIndex]:
        """
        Produce the run-level packaging artifacts.

        Creates the combined archive when `separate` is off and more than one
        platform succeeded, then writes packages-manifest.json once. Errors
        are logged and carried in `PackageIndex.errors`, never raised.

        Returns:
            The index, or None when packaging is disabled or nothing was packaged.
        """
        if not spec.packaging.enabled:
            return None

        assembler = self._assembler(spec)
        packages = [r.package for r in results if r.package is not None]
        succeeded = [r for r in results if r.success]
        errors: list[str] = []

        if not spec.packaging.separate and len(succeeded) > 1:
            try:
                packages.append(
                    assembler.package_combined(
                        {r.platform: spec.platform_dir(r.platform) for r in succeeded},
                        spec.version,
                    )
                )
            except PackageError as err:
                errors.append(str(err))
                _logger.error("Combined package failed", extra={"error": str(err)})

        if not packages:
            return None

        index = assembler.build_index(packages)
        try:
            assembler.write_index(index)
        except PackageError as err:
            errors.append(str(err))
            _logger.error("Package index not written", extra={"error": str(err)})

        return index.with_errors(errors) if errors else index
