# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Secret scanner for platform output directories.

An update archive is downloaded by every installed app, so anything inside
it is public. The orchestrator runs this scan right before packaging and
fails the platform on any finding. The standalone `hotpack validate`
command runs it too.

This scanner performs static text matching only. Bundle files are scanned
as text with undecodable bytes replaced, since a key pasted into JS source
ends up in the bundle verbatim.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from hotpack.logging.logger import get_logger

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class SecurityFinding:
    """A single finding from a scan."""

    severity: str  # "high", "medium"
    category: str
    file: str
    line: int
    message: str


_SECRET_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("private_key", re.compile(r"-----BEGIN (?:RSA |EC |ENCRYPTED )?PRIVATE KEY-----")),
    ("aws_key", re.compile(r"AKIA[0-9A-Z]{16}")),
    ("github_token", re.compile(r"gh[ps]_[A-Za-z0-9_]{36,}")),
]

# Text files worth reading. Images and fonts are skipped.
_SCANNABLE_EXTENSIONS: frozenset[str] = frozenset({
    ".bundle", ".jsbundle", ".js", ".json", ".map", ".pem", ".key", ".txt", ".env",
    ".yaml", ".yml", ".xml", ".html",
})

# A file with one of these names is a finding regardless of its content.
_KEY_FILE_SUFFIXES: tuple[str, ...] = ("_private.pem", ".key", ".p12", ".pfx")


def _scan_file(file_path: Path) -> list[SecurityFinding]:
    findings: list[SecurityFinding] = []
    try:
        content = file_path.read_text(encoding="utf-8", errors="replace")
    except OSError as err:
        _logger.warning("File skipped by scan", extra={"file": str(file_path), "error": str(err)})
        return findings

    for line_num, line in enumerate(content.splitlines(), start=1):
        for pattern_name, pattern in _SECRET_PATTERNS:
            if pattern.search(line):
                findings.append(SecurityFinding(
                    severity="high",
                    category="secret",
                    file=str(file_path),
                    line=line_num,
                    message=f"Potential {pattern_name} detected",
                ))
    return findings


def scan_for_secrets(directory: Path) -> list[SecurityFinding]:
    """
    Scan a directory tree for private keys and credentials.

    Args:
        directory: Root directory to scan recursively.

    Returns:
        List of SecurityFinding objects. Empty list means no issues found.

    Raises:
        FileNotFoundError: If `directory` doesn't exist.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")

    findings: list[SecurityFinding] = []

    for file_path in sorted(directory.rglob("*")):
        if not file_path.is_file():
            continue
        if file_path.name.endswith(_KEY_FILE_SUFFIXES):
            findings.append(SecurityFinding(
                severity="high",
                category="key_file",
                file=str(file_path),
                line=0,
                message="Key file inside output directory",
            ))
            continue
        if file_path.suffix not in _SCANNABLE_EXTENSIONS:
            continue
        findings.extend(_scan_file(file_path))

    _logger.info(
        "Secret scan complete",
        extra={"directory": str(directory), "findings": len(findings)},
    )
    return findings


def format_findings(findings: list[SecurityFinding]) -> str:
    """One line per finding, for error messages."""
    return "; ".join(
        f"{f.message} in {f.file}" + (f":{f.line}" if f.line else "") for f in findings
    )
