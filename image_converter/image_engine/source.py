"""Source binding: validate a source path against the supported formats."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from image_converter.errors import UnsupportedSourceFormat
from image_converter.file_operations import iter_images
from image_converter.path_utils import abs_path_str, ext_of

SUPPORTED_EXTS = frozenset({"png", "jpg", "jpeg", "webp", "tiff", "gif"})
# Accepted on input only; normalized to the canonical name
_EXT_ALIASES = {"tif": "tiff"}


@dataclass(frozen=True)
class BoundSource:
    path: str
    ext: str


def bind_source(path: str) -> BoundSource:
    """Validate `path` by extension only; nothing is read from disk here."""
    ext = ext_of(path)
    ext = _EXT_ALIASES.get(ext, ext)
    if ext not in SUPPORTED_EXTS:
        raise UnsupportedSourceFormat(str(path), ext)
    return BoundSource(path=abs_path_str(path), ext=ext)


def find_sources(folder: str | Path, recursive: bool = False) -> list[Path]:
    """Supported images in `folder`, for callers that loop over a directory."""
    return iter_images(folder, SUPPORTED_EXTS | set(_EXT_ALIASES), recursive=recursive)
