"""Path normalization utilities.

This module centralizes the project's path rules:

- Use absolute paths when interacting with the filesystem.
- Extensions are compared lowercase and without the leading dot.

Keep this module free of codec dependencies.
"""

from __future__ import annotations

from pathlib import Path


def abs_path(path: str | Path) -> Path:
    """Return an absolute path without requiring that it exists."""
    p = Path(path).expanduser()
    try:
        # strict=False avoids exceptions for non-existent paths.
        return p.resolve(strict=False)
    except OSError:
        return p.absolute()


def abs_path_str(path: str | Path) -> str:
    """Absolute, OS-native path string."""
    return str(abs_path(path))


def ext_of(path: str | Path) -> str:
    """Lowercase extension without the dot ("/a/b.JPG" -> "jpg")."""
    return Path(path).suffix.lower().lstrip(".")
