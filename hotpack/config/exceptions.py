# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Custom exceptions for the configuration system.

We keep these separate so that CLI and other layers can catch config-specific
failures without importing the entire config machinery.

A ConfigError is the only fatal error class: it stops a run before any
platform work begins.
"""

from hotpack.errors import HotpackError


class ConfigError(HotpackError):
    """
    Base for all configuration errors.

    `field` names the offending config key in dotted form
    (e.g. "build.platforms") when one can be identified.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ConfigLoadError(ConfigError):
    """Raised when a config file cannot be read from disk or parsed as YAML."""


class ConfigValidationError(ConfigError):
    """
    Raised when a config parses fine but is not usable: schema violations,
    unknown platforms, bad versions, a missing project, unusable key material.
    """
