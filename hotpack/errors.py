# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Error taxonomy for the build pipeline.

Config errors live in hotpack.config.exceptions so the CLI can catch them
without importing the build machinery; they share HotpackError as a base.

Only ConfigError is fatal for a whole run. Everything else is captured into
the result of the platform (or packaging operation) it happened in.
"""


class HotpackError(Exception):
    """Base for every error raised by hotpack."""


class BundlerError(HotpackError):
    """The external bundler failed or produced an unusable bundle."""

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class HashError(HotpackError):
    """A single file could not be hashed. Degrades to a warning."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class AssetConsistencyError(HotpackError):
    """Raised only in strict asset mode when bundle references are unmatched."""

    def __init__(self, message: str, warnings: list[str]) -> None:
        super().__init__(message)
        self.warnings = warnings


class SignatureError(HotpackError):
    """Base for signing and verification failures."""


class SigningError(SignatureError):
    """Key material or algorithm problems while producing a signature."""


class SignatureFormatError(SignatureError):
    """A signature string is not of the form ALGORITHM:BASE64."""


class SignatureVerifyError(SignatureError):
    """Verification could not be carried out (bad key, bad payload)."""


class PackageError(HotpackError):
    """Archive creation or index writing failed."""
