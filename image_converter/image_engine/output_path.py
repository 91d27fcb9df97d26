"""Destination path resolution.

Two modes:

- explicit path ("/x/y/out.png"): the directory and filename are used as given,
  the directory is created if missing;
- bare format ("webp"): the file lands next to the source as
  ``<source-stem>_<suffix>.<format>``.
"""

from __future__ import annotations

import os
from pathlib import Path

from image_converter.errors import EncodeFailure
from image_converter.file_operations import FileIO, LocalFileIO
from image_converter.logger import get_logger
from image_converter.path_utils import abs_path, ext_of

_logger = get_logger("output_path")

DEFAULT_SUFFIX = "converted"


def is_bare_format(path_or_format: str | None) -> bool:
    if path_or_format is None:
        return True
    token = str(path_or_format).strip()
    return ext_of(token) == "" and os.sep not in token and "/" not in token


def resolve_output_path(
    path_or_format: str | None,
    source_path: str,
    suffix: str | None = None,
    *,
    fileio: FileIO | None = None,
    force_ext: str | None = None,
) -> str:
    """Return the absolute output path and make sure its directory exists.

    `force_ext` replaces whatever extension the token carries; optimize mode
    uses it to keep the source format.
    """
    fileio = fileio or LocalFileIO()

    if is_bare_format(path_or_format):
        ext = force_ext or str(path_or_format or "").strip().lstrip(".").lower()
        if not ext:
            raise ValueError("an output path or target format is required")
        src = abs_path(source_path)
        suffix = DEFAULT_SUFFIX if suffix is None else suffix
        name = f"{src.stem}_{suffix}" if suffix else src.stem
        output = src.parent / f"{name}.{ext}"
    else:
        dest = abs_path(str(path_or_format))
        ext = force_ext or ext_of(dest)
        output = dest.parent / f"{dest.stem}.{ext}"

    _ensure_dir(output.parent, fileio)
    _logger.debug("output path resolved: %s", output)
    return str(output)


def _ensure_dir(directory: Path, fileio: FileIO) -> None:
    if fileio.exists(str(directory)):
        return
    try:
        fileio.makedirs(str(directory))
    except OSError as e:
        raise EncodeFailure(f"cannot create output directory {directory}: {e}") from e
