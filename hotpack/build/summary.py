# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Human-readable run report: BUILD_SUMMARY.md in the output root, plus the
short text block the CLI prints after a build.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from hotpack.build.orchestrator import PlatformBuildResult
from hotpack.config.spec import BuildSpec
from hotpack.constants import SUMMARY_FILENAME
from hotpack.packaging.packager import PackageIndex
from hotpack.utils.filesystem import atomic_write


def format_bytes(size: int) -> str:
    """1536 -> "1.5 KB"."""
    if size <= 0:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB")
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(units) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {units[unit]}"


def render_console_summary(results: Sequence[PlatformBuildResult]) -> str:
    """Successful and failed platforms, one line each, with every failure's message."""
    successful = [r for r in results if r.success]
    failed = [r for r in results if not r.success]

    lines = [
        "Build Summary",
        "=============",
        f"Successful builds: {len(successful)}",
        f"Failed builds: {len(failed)}",
    ]
    if successful:
        lines.append("")
        lines.append("Successful builds:")
        for r in successful:
            target = r.archive_path or r.manifest_path
            lines.append(f"  {r.platform}: {target}")
            if r.size:
                lines.append(f"     Size: {format_bytes(r.size)}")
    if failed:
        lines.append("")
        lines.append("Failed builds:")
        for r in failed:
            if r.error is not None:
                lines.append(f"  {r.platform} [{r.error.stage.value}] {r.error.kind}: {r.error.message}")
            else:
                lines.append(f"  {r.platform}: unknown error")
    return "\n".join(lines)


def render_build_summary(
    spec: BuildSpec,
    results: Sequence[PlatformBuildResult],
    index: Optional[PackageIndex] = None,
    now: Optional[datetime] = None,
) -> str:
    moment = now or datetime.now(tz=timezone.utc)
    lines = [
        f"# Hot Update Build v{spec.version}",
        "",
        f"- Generated: {moment.isoformat()}",
        f"- Platforms: {', '.join(spec.platforms)}",
        f"- Minified: {'yes' if spec.minify else 'no'}",
        f"- Source maps: {'yes' if spec.sourcemap else 'no'}",
        f"- Signed: {spec.signature.algorithm if spec.signing_enabled and spec.signature else 'no'}",
        "",
        "## Platforms",
        "",
        "| Platform | Status | Stage | Archive | Size |",
        "|----------|--------|-------|---------|------|",
    ]
    for r in results:
        status = "ok" if r.success else "failed"
        stage = r.stage.value if r.success or r.error is None else r.error.stage.value
        archive = r.archive_path.name if r.archive_path else "-"
        lines.append(f"| {r.platform} | {status} | {stage} | {archive} | {format_bytes(r.size)} |")

    failures = [(r.platform, r.error) for r in results if r.error is not None]
    if failures:
        lines += ["", "## Failures", ""]
        for platform, error in failures:
            lines.append(f"- **{platform}** ({error.kind}): {error.message}")

    warned = [r for r in results if r.warnings]
    if warned:
        lines += ["", "## Warnings", ""]
        for r in warned:
            for warning in r.warnings:
                lines.append(f"- {r.platform}: {warning}")

    if spec.warnings:
        lines += ["", "## Configuration notes", ""]
        lines += [f"- {w}" for w in spec.warnings]

    if index is not None:
        lines += [
            "",
            "## Packages",
            "",
            f"- Total packages: {index.total_packages}",
            f"- Total bundle size: {format_bytes(index.total_size)}",
            f"- Total assets: {index.total_assets}",
        ]
        for package in index.packages:
            lines.append(f"- `{package.filename}` ({format_bytes(package.size)}, {package.checksum})")
        for error in index.errors:
            lines.append(f"- error: {error}")

    return "\n".join(lines) + "\n"


def write_build_summary(
    spec: BuildSpec,
    results: Sequence[PlatformBuildResult],
    index: Optional[PackageIndex] = None,
) -> Path:
    """Atomically write BUILD_SUMMARY.md into the output root."""
    path = spec.output_root / SUMMARY_FILENAME
    atomic_write(path, render_build_summary(spec, results, index))
    return path
