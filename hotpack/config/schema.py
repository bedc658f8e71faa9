# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schema for hotpack.config.yaml.

Each section of the config file gets its own frozen pydantic model:
  - frozen=True: immutability after construction
  - extra="forbid": unknown keys cause immediate failure
  - validate_default=True: even defaults get type-checked

Field-level checks that only need the value itself (platform names,
algorithm ids, semantic versions) live here as validators, so pydantic
reports them with the offending key's location. Checks that need the
filesystem (project layout, key files) live in hotpack.config.validator.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from hotpack.constants import (
    DEFAULT_KEY_NAME,
    DEFAULT_SIGNATURE_ALGORITHM,
    SIGNATURE_ALGORITHMS,
    SUPPORTED_PLATFORMS,
    valid_key_sizes,
)

_SEMVER = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


def normalize_semver(value: str) -> str:
    """
    Validate a semantic version and return it in canonical form.

    A leading "v" or "=" and surrounding whitespace are tolerated and
    dropped, so "v1.2.3" becomes "1.2.3".

    Raises:
        ValueError: If the value is not a semantic version.
    """
    candidate = value.strip().lstrip("=v").strip()
    if not _SEMVER.match(candidate):
        raise ValueError(
            f"Invalid version format: {value!r}. Use semantic versioning (e.g. 1.0.0)"
        )
    return candidate


class ProjectConfig(BaseModel):
    """Where the React Native project lives, relative to the config file."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    path: str = Field(default="./", description="Project root containing package.json")
    entry_file: Optional[str] = Field(
        default=None,
        description="Bundler entry file; index.{js,ts,jsx,tsx} is probed when unset",
    )


class BuildConfig(BaseModel):
    """What to build and where the output goes."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    platforms: list[str] = Field(
        default_factory=lambda: list(SUPPORTED_PLATFORMS),
        description="Target platforms, built independently of each other",
    )
    version: Optional[str] = Field(
        default=None,
        description="Update version; falls back to package.json, then 1.0.0",
    )
    output_path: str = Field(default="./hotupdate-build", description="Output root")
    bundle_name: str = Field(default="index", min_length=1, description="Bundle base name")
    sourcemap: bool = Field(default=False, description="Ask the bundler for a source map")
    minify: bool = Field(default=True, description="Ask the bundler to minify")
    min_app_version: str = Field(
        default="1.0.0",
        description="Oldest native app version that can apply this update",
    )
    strict_assets: bool = Field(
        default=False,
        description="Fail a platform when the bundle references assets that were not produced",
    )
    max_workers: int = Field(
        default=1,
        ge=1,
        le=8,
        description="Platforms built in parallel; 1 builds them one after another",
    )

    @field_validator("platforms")
    @classmethod
    def _check_platforms(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("At least one platform is required")
        for platform in value:
            if platform not in SUPPORTED_PLATFORMS:
                raise ValueError(
                    f"Invalid platform: {platform}. Valid platforms: {', '.join(SUPPORTED_PLATFORMS)}"
                )
        return value

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else normalize_semver(value)

    @field_validator("min_app_version")
    @classmethod
    def _check_min_app_version(cls, value: str) -> str:
        return normalize_semver(value)


class AssetsConfig(BaseModel):
    """
    Supplementary assets copied next to the bundler's own output.

    Patterns are globs relative to the project root. The bundler already
    handles everything reachable through require(), so the defaults only pick
    up a root-level assets/ folder.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    include: list[str] = Field(default_factory=lambda: ["assets/**/*"])
    exclude: list[str] = Field(
        default_factory=lambda: [
            "node_modules/**",
            "ios/**",
            "android/**",
            ".git/**",
            "dist/**",
            "build/**",
            "src/**",
            "**/.DS_Store",
            "**/*.md",
            "**/*.txt",
        ]
    )


class PackageConfig(BaseModel):
    """Archive creation."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    enabled: bool = Field(default=True, description="Create archives after a successful build")
    separate: bool = Field(
        default=True,
        description="One archive per platform only; false also creates a combined archive",
    )
    naming_template: str = Field(
        default="{platform}-v{version}-{timestamp}",
        description="Archive base name; {platform}, {version} and {timestamp} are substituted",
    )


class SignatureConfig(BaseModel):
    """Manifest signing."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    enabled: bool = Field(default=False)
    algorithm: str = Field(default=DEFAULT_SIGNATURE_ALGORITHM)
    key_size: Optional[int] = Field(
        default=None,
        description="RSA modulus length or EC curve size; family default when unset",
    )
    private_key_path: Optional[str] = Field(default=None)
    public_key_path: Optional[str] = Field(default=None)
    auto_generate: bool = Field(
        default=True,
        description="Generate a key pair when no usable private key is configured",
    )
    key_directory: Optional[str] = Field(
        default=None,
        description="Where generated keys are written; <output>/keys when unset",
    )
    key_name: str = Field(default=DEFAULT_KEY_NAME, min_length=1)

    @field_validator("algorithm")
    @classmethod
    def _check_algorithm(cls, value: str) -> str:
        if value not in SIGNATURE_ALGORITHMS:
            raise ValueError(
                f"Invalid signature algorithm: {value}. "
                f"Valid algorithms: {', '.join(SIGNATURE_ALGORITHMS)}"
            )
        return value

    @field_validator("key_size")
    @classmethod
    def _check_key_size(cls, value: Optional[int], info: ValidationInfo) -> Optional[int]:
        algorithm = info.data.get("algorithm")
        if value is None or algorithm is None:
            return value
        allowed = valid_key_sizes(algorithm)
        if value not in allowed:
            raise ValueError(
                f"Invalid key size {value} for {algorithm}. "
                f"Valid sizes: {', '.join(str(s) for s in allowed)}"
            )
        return value


class LoggingConfig(BaseModel):
    """Log verbosity and an optional JSON log file, relative to the config file."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    level: str = Field(default="INFO")
    file: Optional[str] = Field(default=None)

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return upper


class MetadataConfig(BaseModel):
    """Free-form descriptive fields, echoed in the build summary."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    description: str = Field(default="")
    author: str = Field(default="")
    homepage: str = Field(default="")


class HotpackConfig(BaseModel):
    """Top-level container for hotpack.config.yaml. Every section is optional."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    assets: AssetsConfig = Field(default_factory=AssetsConfig)
    package: PackageConfig = Field(default_factory=PackageConfig)
    signature: SignatureConfig = Field(default_factory=SignatureConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)
