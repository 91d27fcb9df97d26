"""Common file operation utilities.

This module provides the low-level filesystem capability used by:
- image_engine/output_path.py: destination directory creation
- image_engine/pipeline.py: writing encoded bytes, cleaning up failed writes

The pipeline receives a `FileIO` object instead of touching `os` directly, so
tests (or a caller with a different storage layer) can substitute their own.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from .logger import get_logger

_logger = get_logger("file_operations")


class FileIO(Protocol):
    def exists(self, path: str) -> bool: ...

    def makedirs(self, path: str) -> None: ...

    def write_bytes(self, path: str, data: bytes) -> None: ...

    def remove(self, path: str) -> None: ...


class LocalFileIO:
    """FileIO backed by the local filesystem."""

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def makedirs(self, path: str) -> None:
        # exist_ok keeps concurrent creators from failing on each other
        os.makedirs(path, exist_ok=True)

    def write_bytes(self, path: str, data: bytes) -> None:
        """Write via a temp file in the same directory and rename into place.

        Readers never observe a half-written image, and a failure leaves no
        file at `path`.
        """
        directory = os.path.dirname(path) or "."
        fd, tmp = tempfile.mkstemp(prefix=".tmp-", suffix=Path(path).suffix, dir=directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp)
            raise
        _logger.debug("wrote %d bytes: %s", len(data), path)

    def remove(self, path: str) -> None:
        Path(path).unlink(missing_ok=True)


def iter_images(folder: str | Path, exts: Iterable[str], recursive: bool = False) -> list[Path]:
    """List files under `folder` whose lowercase extension is in `exts`.

    `exts` are given without the dot ("png", "jpg"). Results are sorted so a
    caller looping over them gets a stable order.
    """
    wanted = {e.lower().lstrip(".") for e in exts}
    root = Path(folder)
    candidates = root.rglob("*") if recursive else root.iterdir()
    return sorted(p for p in candidates if p.is_file() and p.suffix.lower().lstrip(".") in wanted)
