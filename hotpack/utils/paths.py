# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Path helpers for hotpack.

Manifests and archives must look the same no matter which OS produced them,
so every path that ends up in a manifest goes through `to_posix` first.
"""

from pathlib import Path, PurePath


def to_posix(path: PurePath | str) -> str:
    """Render a relative path with forward slashes."""
    return str(path).replace("\\", "/")


def relative_posix(path: Path, root: Path) -> str:
    """`path` relative to `root`, forward-slash separated."""
    return to_posix(path.relative_to(root))


def validate_path_within(target: Path, root: Path) -> Path:
    """
    Make sure a path doesn't escape `root`.

    Both paths are resolved first, so `../` tricks and symlinks pointing
    outside are caught.

    Returns:
        The resolved absolute path if it's inside `root`.

    Raises:
        ValueError: If the path escapes `root`.
    """
    resolved_target = target.resolve()
    resolved_root = root.resolve()

    if resolved_target != resolved_root and resolved_root not in resolved_target.parents:
        raise ValueError(
            f"Path '{target}' resolves to '{resolved_target}' which is outside "
            f"'{resolved_root}'."
        )

    return resolved_target
