# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for hotpack.

This is the single root command. Every operation is a subcommand of
`hotpack`; `signature` and `config` are groups with their own subcommands.

The global --log-level option is inherited by every subcommand through
argparse's parent parser mechanism. When it is omitted, a config file's
logging.level applies.

Usage:
    hotpack build
    hotpack build-ci --project-path ./MyApp --platforms ios,android
    hotpack build-config --config hotpack.config.yaml --dry-run
    hotpack signature verify --manifest ./hotupdate-build/ios
    hotpack validate --build-path ./hotupdate-build
"""

import argparse
import sys
from typing import Optional, Sequence

from hotpack import __version__
from hotpack.cli.commands import (
    handle_build,
    handle_build_ci,
    handle_build_config,
    handle_clean,
    handle_compare,
    handle_config_init,
    handle_config_validate,
    handle_generate_keys,
    handle_info,
    handle_sign,
    handle_validate,
    handle_verify,
    missing_subcommand,
)
from hotpack.cli.exit_codes import USAGE_ERROR
from hotpack.cli.prompts import DEFAULT_BUNDLE_NAME, DEFAULT_OUTPUT
from hotpack.constants import (
    DEFAULT_KEY_NAME,
    DEFAULT_SIGNATURE_ALGORITHM,
    SIGNATURE_ALGORITHMS,
    SUPPORTED_PLATFORMS,
)
from hotpack.logging.logger import set_level

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _build_global_parser() -> argparse.ArgumentParser:
    """
    Build the parent parser with global options.

    Uses add_help=False so its help doesn't collide with the subcommand
    parsers that inherit it.
    """
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=_LOG_LEVELS,
        help="Set the logging verbosity level (default: config's logging.level, else INFO).",
    )
    return parent


def _add_build_ci(subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser) -> None:  # type: ignore[type-arg]
    parser = subparsers.add_parser(
        "build-ci", parents=[parent], help="Build without prompts (for CI/CD)."
    )
    parser.add_argument("-p", "--project-path", required=True, dest="project_path",
                        help="Path to the React Native project.")
    parser.add_argument("--platforms", default=",".join(SUPPORTED_PLATFORMS),
                        help="Comma-separated platforms.")
    parser.add_argument("--version", default=None,
                        help="Version to publish (defaults to package.json version).")
    parser.add_argument("--output", default=DEFAULT_OUTPUT, help="Output directory.")
    parser.add_argument("--bundle-name", default=DEFAULT_BUNDLE_NAME, dest="bundle_name")
    parser.add_argument("--entry-file", default=None, dest="entry_file",
                        help="Entry file (detected when omitted).")
    parser.add_argument("--sourcemap", action="store_true", help="Generate source maps.")
    parser.add_argument("--no-minify", action="store_true", dest="no_minify",
                        help="Disable minification.")
    parser.add_argument("--strict-assets", action="store_true", dest="strict_assets",
                        help="Fail a platform whose bundle references missing assets.")
    parser.add_argument("--max-workers", type=int, default=1, dest="max_workers",
                        help="Platforms built in parallel.")
    parser.add_argument("--no-package", action="store_true", dest="no_package",
                        help="Skip archive creation.")
    parser.add_argument("--combined", action="store_true",
                        help="Also create one archive holding every platform.")
    parser.add_argument("--signature", action="store_true", help="Sign manifests.")
    parser.add_argument("--signature-algorithm", default=DEFAULT_SIGNATURE_ALGORITHM,
                        choices=SIGNATURE_ALGORITHMS, dest="signature_algorithm")
    parser.add_argument("--private-key", default=None, dest="private_key",
                        help="Signing key (generated when omitted).")
    parser.add_argument("--key-size", type=int, default=None, dest="key_size",
                        help="RSA modulus bits or EC curve size for a generated key.")
    parser.set_defaults(func=handle_build_ci)


def _add_signature_group(subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser) -> None:  # type: ignore[type-arg]
    group = subparsers.add_parser("signature", parents=[parent], help="Manage manifest signatures.")
    group.set_defaults(func=missing_subcommand(group))
    actions = group.add_subparsers(dest="signature_command")

    generate = actions.add_parser("generate-keys", parents=[parent], help="Generate a key pair.")
    generate.add_argument("--output", default="./keys", help="Directory for the key files.")
    generate.add_argument("--name", default=DEFAULT_KEY_NAME, help="Key file name prefix.")
    generate.add_argument("--algorithm", default=DEFAULT_SIGNATURE_ALGORITHM,
                          choices=SIGNATURE_ALGORITHMS)
    generate.add_argument("--key-size", type=int, default=None, dest="key_size")
    generate.set_defaults(func=handle_generate_keys)

    sign = actions.add_parser("sign", parents=[parent], help="Sign a manifest in place.")
    sign.add_argument("--manifest", required=True,
                      help="manifest.json or the platform directory holding it.")
    sign.add_argument("--private-key", required=True, dest="private_key")
    sign.add_argument("--algorithm", default=DEFAULT_SIGNATURE_ALGORITHM,
                      choices=SIGNATURE_ALGORITHMS)
    sign.set_defaults(func=handle_sign)

    verify = actions.add_parser("verify", parents=[parent], help="Verify a manifest signature.")
    verify.add_argument("--manifest", required=True,
                        help="manifest.json or the platform directory holding it.")
    verify.add_argument("--public-key", default=None, dest="public_key",
                        help="Public key to trust instead of the embedded one.")
    verify.set_defaults(func=handle_verify)


def _add_config_group(subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser) -> None:  # type: ignore[type-arg]
    group = subparsers.add_parser("config", parents=[parent], help="Create or check a config file.")
    group.set_defaults(func=missing_subcommand(group))
    actions = group.add_subparsers(dest="config_command")

    init = actions.add_parser("init", parents=[parent], help="Write an example config file.")
    init.add_argument("--output", default="hotpack.config.yaml")
    init.add_argument("--force", action="store_true", help="Overwrite an existing file.")
    init.set_defaults(func=handle_config_init)

    check = actions.add_parser("validate", parents=[parent], help="Validate a config file.")
    check.add_argument("--config", default=None)
    check.set_defaults(func=handle_config_validate)


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    """
    Register all subcommands with their handler functions.

    Each subcommand sets its handler via set_defaults(func=...).
    """
    build = subparsers.add_parser("build", parents=[parent], help="Interactive build.")
    build.set_defaults(func=handle_build)

    _add_build_ci(subparsers, parent)

    build_config = subparsers.add_parser(
        "build-config", parents=[parent], help="Build from a config file."
    )
    build_config.add_argument("--config", default=None,
                              help="Config file (hotpack.config.yaml in the working directory by default).")
    build_config.add_argument("--dry-run", action="store_true", dest="dry_run",
                              help="Validate and show the plan without building.")
    build_config.set_defaults(func=handle_build_config)

    _add_signature_group(subparsers, parent)
    _add_config_group(subparsers, parent)

    validate = subparsers.add_parser("validate", parents=[parent], help="Check a build output directory.")
    validate.add_argument("--build-path", default=DEFAULT_OUTPUT, dest="build_path")
    validate.set_defaults(func=handle_validate)

    compare = subparsers.add_parser("compare", parents=[parent], help="Compare bundle sizes.")
    compare.add_argument("--build-path", default=DEFAULT_OUTPUT, dest="build_path")
    compare.set_defaults(func=handle_compare)

    clean = subparsers.add_parser("clean", parents=[parent], help="Remove build artifacts.")
    clean.add_argument("--build-path", default=DEFAULT_OUTPUT, dest="build_path")
    clean.add_argument("--all", action="store_true", help="Also remove packages.")
    clean.add_argument("-y", "--yes", action="store_true", help="Don't ask for confirmation.")
    clean.set_defaults(func=handle_clean)

    info = subparsers.add_parser("info", parents=[parent], help="Show project and build information.")
    info.add_argument("-p", "--project-path", default="./", dest="project_path")
    info.add_argument("--build-path", default=None, dest="build_path")
    info.set_defaults(func=handle_info)


def build_parser() -> argparse.ArgumentParser:
    parent = _build_global_parser()
    root_parser = argparse.ArgumentParser(
        prog="hotpack",
        description="hotpack - React Native hot update packager.",
    )
    root_parser.add_argument("--version", action="version", version=f"hotpack {__version__}")
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)
    return root_parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main CLI entrypoint. This is what pyproject.toml's [project.scripts] points to.

    If no subcommand is given, shows help and exits with USAGE_ERROR.
    """
    root_parser = build_parser()
    args = root_parser.parse_args(argv)

    if getattr(args, "func", None) is None:
        root_parser.print_help()
        sys.exit(USAGE_ERROR)

    if args.log_level is not None:
        set_level(args.log_level)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
