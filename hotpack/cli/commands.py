# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the hotpack CLI.

Each function here corresponds to one CLI subcommand and returns an exit
code. Progress and errors go through the structured logger; reports meant
for the person at the terminal (build summary, verification results, key
locations) are written to stdout.
"""

import argparse
import logging
import platform as _platform
import sys
from pathlib import Path
from typing import Any, Callable, Optional

from hotpack import __version__
from hotpack.build.bundler import BundleProducer, ReactNativeBundleProducer
from hotpack.build.orchestrator import BuildOrchestrator, run_succeeded
from hotpack.build.summary import format_bytes, render_console_summary, write_build_summary
from hotpack.cli.exit_codes import FAILURE, SUCCESS, USAGE_ERROR
from hotpack.cli.prompts import DEFAULT_OUTPUT, collect_build_answers, detect_project_path
from hotpack.config.exceptions import ConfigError
from hotpack.config.loader import find_config_file, load_config
from hotpack.config.spec import BuildSpec
from hotpack.config.validator import render_example_config, validate_config, validate_raw
from hotpack.constants import MANIFEST_FILENAME, PACKAGES_DIRNAME, SUPPORTED_PLATFORMS
from hotpack.errors import HotpackError
from hotpack.logging.logger import get_logger, set_level
from hotpack.release.cleaner import clean_output, plan_clean
from hotpack.release.compare import collect_bundle_sizes, size_stats
from hotpack.release.verifier import verify_output
from hotpack.signing.keys import SigningKeyProvider, generate_key_pair, read_key_file, save_key_pair
from hotpack.signing.signer import sign_manifest, verify_manifest
from hotpack.utils.filesystem import atomic_write

InputFn = Callable[[str], str]


def _out(text: str = "") -> None:
    sys.stdout.write(text + "\n")
    sys.stdout.flush()


def _command_logger(args: argparse.Namespace, command_name: str) -> logging.Logger:
    return get_logger(f"hotpack.cli.{command_name}", log_level=args.log_level or "INFO")


def _config_error(logger: logging.Logger, command_name: str, err: ConfigError) -> int:
    logger.error(
        "Configuration error",
        extra={"command": command_name, "field": err.field, "error": str(err)},
    )
    return FAILURE


def _manifest_path(value: str) -> Path:
    """Accept either a manifest file or the platform directory holding it."""
    path = Path(value)
    return path / MANIFEST_FILENAME if path.is_dir() else path


def _run_build(
    args: argparse.Namespace,
    spec: BuildSpec,
    logger: logging.Logger,
    producer: Optional[BundleProducer] = None,
) -> int:
    """
    The build every build-style command ends in.

    Returns SUCCESS only when every platform and the run-level packaging
    succeeded.
    """
    set_level(args.log_level or spec.log_level, spec.log_file)

    key_provider = SigningKeyProvider(spec.signature) if spec.signature is not None else None
    orchestrator = BuildOrchestrator(
        producer or ReactNativeBundleProducer(),
        key_provider=key_provider,
    )

    results = orchestrator.run(spec)
    index = orchestrator.finalize(spec, results)
    summary_path = write_build_summary(spec, results, index)

    _out(render_console_summary(results))
    if index is not None and index.errors:
        _out("")
        _out("Packaging errors:")
        for error in index.errors:
            _out(f"  {error}")
    if key_provider is not None and key_provider.generated_paths is not None:
        _out("")
        _out(f"Generated signing key: {key_provider.generated_paths.private_key_path}")
        _out(f"Public key (ship with the app): {key_provider.generated_paths.public_key_path}")
    _out("")
    _out(f"Summary written to {summary_path}")

    ok = run_succeeded(results) and (index is None or not index.errors)
    logger.info("Build command finished", extra={"success": ok, "summary": str(summary_path)})
    return SUCCESS if ok else FAILURE


def handle_build(args: argparse.Namespace, input_fn: InputFn = input) -> int:
    """Interactive build: ask the questions, then build."""
    logger = _command_logger(args, "build")
    cwd = Path.cwd()

    try:
        answers = collect_build_answers(input_fn, cwd)
    except (EOFError, KeyboardInterrupt):
        logger.warning("Build cancelled", extra={"command": "build"})
        return FAILURE

    if answers is None:
        logger.info("Build cancelled by user", extra={"command": "build"})
        return SUCCESS

    try:
        spec = validate_raw(answers, cwd)
    except ConfigError as err:
        return _config_error(logger, "build", err)

    try:
        return _run_build(args, spec, logger)
    except Exception as err:
        logger.error(
            "Runtime error",
            extra={"command": "build", "error": str(err)},
            exc_info=True,
        )
        return FAILURE


def build_ci_config(args: argparse.Namespace) -> dict[str, Any]:
    """Map build-ci flags onto the raw config shape."""
    build: dict[str, Any] = {
        "platforms": [p.strip() for p in args.platforms.split(",") if p.strip()],
        "output_path": args.output,
        "bundle_name": args.bundle_name,
        "sourcemap": args.sourcemap,
        "minify": not args.no_minify,
        "strict_assets": args.strict_assets,
        "max_workers": args.max_workers,
    }
    if args.version:
        build["version"] = args.version

    project: dict[str, Any] = {"path": args.project_path}
    if args.entry_file:
        project["entry_file"] = args.entry_file

    signature: dict[str, Any] = {"enabled": args.signature}
    if args.signature:
        signature["algorithm"] = args.signature_algorithm
        signature["auto_generate"] = args.private_key is None
        if args.key_size is not None:
            signature["key_size"] = args.key_size
        if args.private_key is not None:
            signature["private_key_path"] = args.private_key

    return {
        "project": project,
        "build": build,
        "package": {"enabled": not args.no_package, "separate": not args.combined},
        "signature": signature,
    }


def handle_build_ci(args: argparse.Namespace) -> int:
    """Non-interactive build driven entirely by flags."""
    logger = _command_logger(args, "build-ci")

    try:
        spec = validate_raw(build_ci_config(args), Path.cwd())
    except ConfigError as err:
        return _config_error(logger, "build-ci", err)

    logger.info(
        "Building",
        extra={
            "platforms": list(spec.platforms),
            "version": spec.version,
            "project": str(spec.project_root),
            "output": str(spec.output_root),
        },
    )

    try:
        return _run_build(args, spec, logger)
    except Exception as err:
        logger.error(
            "Runtime error",
            extra={"command": "build-ci", "error": str(err)},
            exc_info=True,
        )
        return FAILURE


def _describe_plan(spec: BuildSpec) -> None:
    _out("Build plan")
    _out(f"  Platforms: {', '.join(spec.platforms)}")
    _out(f"  Version: {spec.version}")
    _out(f"  Project: {spec.project_root}")
    _out(f"  Entry file: {spec.entry_file}")
    _out(f"  Output: {spec.output_root}")
    _out(f"  Minify: {spec.minify}  Source maps: {spec.sourcemap}")
    _out(f"  Packaging: {'on' if spec.packaging.enabled else 'off'}")
    if spec.signature is not None:
        key = spec.signature.private_key_path or f"generated in {spec.signature.key_directory}"
        _out(f"  Signing: {spec.signature.algorithm} ({key})")
    else:
        _out("  Signing: off")
    for warning in spec.warnings:
        _out(f"  Warning: {warning}")


def handle_build_config(args: argparse.Namespace) -> int:
    """Build from a config file. With --dry-run, only validate and show the plan."""
    logger = _command_logger(args, "build-config")

    config_path = Path(args.config) if args.config else find_config_file(Path.cwd())
    if config_path is None:
        logger.error(
            "No config file given and none found in the working directory",
            extra={"command": "build-config"},
        )
        return FAILURE

    try:
        config = load_config(config_path)
        spec = validate_config(config, config_path.resolve().parent)
    except ConfigError as err:
        return _config_error(logger, "build-config", err)

    if args.dry_run:
        _describe_plan(spec)
        logger.info(
            "Dry run, nothing written",
            extra={"command": "build-config", "config": str(config_path)},
        )
        return SUCCESS

    try:
        return _run_build(args, spec, logger)
    except Exception as err:
        logger.error(
            "Runtime error",
            extra={"command": "build-config", "error": str(err)},
            exc_info=True,
        )
        return FAILURE


def handle_generate_keys(args: argparse.Namespace) -> int:
    logger = _command_logger(args, "signature")
    try:
        pair = generate_key_pair(args.algorithm, args.key_size)
        paths = save_key_pair(pair, Path(args.output), args.name)
    except (HotpackError, OSError) as err:
        logger.error("Key generation failed", extra={"error": str(err)})
        return FAILURE

    _out(f"Private key: {paths.private_key_path}")
    _out(f"Public key: {paths.public_key_path}")
    _out("Keep the private key out of version control and build outputs.")
    return SUCCESS


def handle_sign(args: argparse.Namespace) -> int:
    logger = _command_logger(args, "signature")
    manifest_path = _manifest_path(args.manifest)
    try:
        private_pem = read_key_file(Path(args.private_key))
        result = sign_manifest(manifest_path, private_pem, args.algorithm)
    except HotpackError as err:
        logger.error(
            "Signing failed",
            extra={"manifest": str(manifest_path), "error": str(err)},
        )
        return FAILURE

    _out(f"Signed {manifest_path} with {result.algorithm}")
    return SUCCESS


def handle_verify(args: argparse.Namespace) -> int:
    logger = _command_logger(args, "signature")
    manifest_path = _manifest_path(args.manifest)

    public_pem = None
    if args.public_key:
        try:
            public_pem = read_key_file(Path(args.public_key))
        except HotpackError as err:
            logger.error("Cannot read public key", extra={"error": str(err)})
            return FAILURE

    result = verify_manifest(manifest_path, public_pem)
    if result.is_valid:
        _out(f"Signature valid ({result.algorithm})")
        if result.timestamp is not None:
            _out(f"Signed at: {result.timestamp}")
        return SUCCESS

    failure = result.failure.value if result.failure is not None else "unknown"
    _out(f"Signature invalid [{failure}]: {result.error}")
    return FAILURE


def handle_config_init(args: argparse.Namespace) -> int:
    logger = _command_logger(args, "config")
    target = Path(args.output)
    if target.exists() and not args.force:
        logger.error(
            "Config file already exists, use --force to overwrite",
            extra={"path": str(target)},
        )
        return FAILURE

    try:
        atomic_write(target, render_example_config())
    except OSError as err:
        logger.error("Cannot write config file", extra={"path": str(target), "error": str(err)})
        return FAILURE

    _out(f"Created {target}")
    return SUCCESS


def handle_config_validate(args: argparse.Namespace) -> int:
    logger = _command_logger(args, "config")
    config_path = Path(args.config) if args.config else find_config_file(Path.cwd())
    if config_path is None:
        logger.error("No config file found", extra={"command": "config validate"})
        return FAILURE

    try:
        spec = validate_config(load_config(config_path), config_path.resolve().parent)
    except ConfigError as err:
        _out(f"Invalid configuration: {err}")
        return _config_error(logger, "config validate", err)

    _out(f"Configuration is valid: {config_path}")
    for warning in spec.warnings:
        _out(f"  Warning: {warning}")
    return SUCCESS


def handle_validate(args: argparse.Namespace) -> int:
    """Check a build output directory."""
    _command_logger(args, "validate")
    report = verify_output(Path(args.build_path))

    _out(f"Build directory: {report.build_dir}")
    if report.platforms:
        _out(f"Platforms: {', '.join(report.platforms)}")
    if report.packages:
        _out(f"Packages: {', '.join(report.packages)}")
    for check in report.checks_passed:
        _out(f"  ok    {check}")
    for check in report.checks_failed:
        _out(f"  FAIL  {check}")
    for error in report.errors:
        _out(f"  {error}")
    _out("Build is valid" if report.is_valid else "Build has issues")
    return SUCCESS if report.is_valid else FAILURE


def handle_compare(args: argparse.Namespace) -> int:
    """Show bundle sizes across platforms."""
    _command_logger(args, "compare")
    entries = collect_bundle_sizes(Path(args.build_path))
    stats = size_stats(entries)
    if stats is None:
        _out(f"No bundles found in {args.build_path}")
        return FAILURE

    _out("Bundle sizes")
    for entry in entries:
        _out(f"  {entry.platform:<8} {entry.bundle_file:<32} {format_bytes(entry.size)}")
    _out("")
    _out(f"  Average: {format_bytes(int(stats.average))}")
    _out(f"  Largest: {format_bytes(stats.largest)}")
    _out(f"  Smallest: {format_bytes(stats.smallest)}")
    _out(f"  Difference: {format_bytes(stats.difference)}")
    return SUCCESS


def handle_clean(args: argparse.Namespace, input_fn: InputFn = input) -> int:
    """Remove build artifacts, keeping packages/ unless --all."""
    logger = _command_logger(args, "clean")
    build_dir = Path(args.build_path)
    remove, keep = plan_clean(build_dir, remove_packages=args.all)

    if not remove:
        _out(f"Nothing to clean in {build_dir}")
        return SUCCESS

    _out("Will remove:")
    for item in remove:
        _out(f"  {item}")
    for item in keep:
        _out(f"Keeping {item}")

    if not args.yes:
        try:
            answer = input_fn("Proceed? (y/N): ").strip().lower()
        except EOFError:
            answer = ""
        if answer not in ("y", "yes"):
            _out("Cancelled")
            return SUCCESS

    result = clean_output(build_dir, remove_packages=args.all)
    _out(
        f"Removed {result.removed_dirs} director(ies) and {result.removed_files} file(s), "
        f"freed {format_bytes(result.freed_bytes)}"
    )
    for error in result.errors:
        logger.error("Cleanup error", extra={"error": error})
    return SUCCESS if not result.errors else FAILURE


def handle_info(args: argparse.Namespace) -> int:
    """Display tool, project and build output information."""
    logger = _command_logger(args, "info")

    _out(f"hotpack {__version__}")
    _out(f"Python {_platform.python_version()} on {_platform.system()}")

    project = detect_project_path(Path(args.project_path))
    if project is None:
        _out(f"No React Native project found at or above {Path(args.project_path).resolve()}")
    else:
        try:
            spec = validate_raw({"project": {"path": str(project)}}, project)
        except ConfigError as err:
            _out(f"Project: {project} ({err})")
        else:
            _out(f"Project: {spec.project_root}")
            _out(f"  Version: {spec.version}")
            _out(f"  Entry file: {spec.entry_file}")

    build_dir = Path(args.build_path) if args.build_path else (project or Path.cwd()) / DEFAULT_OUTPUT
    if not build_dir.is_dir():
        _out(f"No builds found in {build_dir}")
        return SUCCESS

    platforms = [p for p in SUPPORTED_PLATFORMS if (build_dir / p).is_dir()]
    _out(f"Build directory: {build_dir}")
    _out(f"  Platform builds: {', '.join(platforms) if platforms else 'none'}")
    packages_dir = build_dir / PACKAGES_DIRNAME
    if packages_dir.is_dir():
        for archive in sorted(packages_dir.glob("*.zip")):
            _out(f"  {archive.name} ({format_bytes(archive.stat().st_size)})")

    logger.debug("Info displayed", extra={"build_dir": str(build_dir)})
    return SUCCESS


def missing_subcommand(parser: argparse.ArgumentParser) -> Callable[[argparse.Namespace], int]:
    """Handler for a command group invoked without one of its subcommands."""

    def _handler(args: argparse.Namespace) -> int:
        parser.print_help()
        return USAGE_ERROR

    return _handler
