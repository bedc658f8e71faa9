# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Safe filesystem operations for hotpack.

Manifests, key files, the package index and the build summary are all
written atomically: content goes to a temporary file in the target's own
directory and is then renamed over the target. Rename on the same filesystem
is atomic on POSIX, so a crash leaves either the old file or the new one,
never a truncated manifest that would fail signature verification.
"""

import json
import os
import tempfile
from pathlib import Path

TEMP_PREFIX = ".hotpack_tmp_"


def atomic_write(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write text to a file atomically.

    Args:
        target_path: Where the final file should end up.
        content: The string content to write.
        encoding: Text encoding to use.

    Raises:
        OSError: If the write or rename fails.
    """
    atomic_write_bytes(target_path, content.encode(encoding))


def atomic_write_bytes(target_path: Path, data: bytes, mode: int | None = None) -> None:
    """
    Write binary data to a file atomically.

    Args:
        target_path: Where the final file should end up.
        data: The raw bytes to write.
        mode: Optional permission bits applied before the rename, so the
              final path never exists with looser permissions.

    Raises:
        OSError: If the write or rename fails.
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=str(target_path.parent),
        prefix=TEMP_PREFIX,
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(temp_fd.name)

    try:
        temp_fd.write(data)
        temp_fd.flush()
        temp_fd.close()
        if mode is not None:
            os.chmod(temp_path, mode)
        os.replace(temp_path, target_path)
    except BaseException:
        temp_fd.close()
        if temp_path.exists():
            temp_path.unlink()
        raise


def write_json(target_path: Path, data: object) -> None:
    """Atomically write `data` as 2-space indented JSON with a trailing newline."""
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    atomic_write(target_path, content)


def read_json(file_path: Path) -> object:
    """
    Read and parse a JSON file.

    Raises:
        FileNotFoundError: If the path doesn't exist.
        ValueError: If the content is not valid JSON.
    """
    if not file_path.is_file():
        raise FileNotFoundError(f"File not found: {file_path}")
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as err:
        raise ValueError(f"Invalid JSON in {file_path}: {err}") from err


def directory_size(path: Path) -> int:
    """Recursively sum the size of all files in a directory."""
    total = 0
    for f in path.rglob("*"):
        if f.is_file():
            try:
                total += f.stat().st_size
            except OSError:
                continue
    return total
