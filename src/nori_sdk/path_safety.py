"""
Path safety utilities for nori-sdk.

This module provides shared validation for archive member names to prevent
directory traversal attacks when unpacking layers.
"""
from __future__ import annotations

from pathlib import Path, PurePosixPath


def safe_relpath(path: str) -> str:
    """
    Validate and normalize an archive-relative path.

    This function enforces the following safety rules:
    - No empty strings or "." (prevents root directory access)
    - No absolute paths (starting with '/')
    - No parent directory references ('..' components)
    - No backslashes or NUL bytes

    Args:
        path: Path string from an archive header

    Returns:
        Normalized relative path safe for use

    Raises:
        ValueError: If path violates safety rules

    Examples:
        >>> safe_relpath("src/model.py")
        'src/model.py'

        >>> safe_relpath("dir/")
        'dir'

        >>> safe_relpath("../secrets.txt")
        ValueError: unsafe path: ../secrets.txt
    """
    rel = PurePosixPath(path)
    s = str(rel)
    if not s or s == ".":
        raise ValueError(f"unsafe path: {path}")
    if "\\" in s or "\x00" in s:
        raise ValueError(f"unsafe path: {path}")
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"unsafe path: {path}")
    return s


def resolve_within(root: Path, relpath: str) -> Path:
    """
    Join relpath onto root and check the result stays under root.

    Symlinks already present under root are resolved, so a pre-existing link
    pointing outside the root is caught too.

    Raises:
        ValueError: If the resolved path escapes root
    """
    root = root.resolve()
    target = (root / safe_relpath(relpath)).resolve()
    if target != root and root not in target.parents:
        raise ValueError(f"unsafe path: {relpath} escapes {root}")
    return target


__all__ = ["safe_relpath", "resolve_within"]
