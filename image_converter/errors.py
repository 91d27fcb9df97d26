"""Exceptions raised by the conversion pipeline.

Every failure aborts the current job only; the processor stays usable.
"""

from __future__ import annotations


class ImageConverterError(Exception):
    """Base class for all pipeline errors."""


class UnsupportedSourceFormat(ImageConverterError, ValueError):
    def __init__(self, path: str, ext: str) -> None:
        super().__init__(f"Unsupported image format: .{ext} ({path})" if ext else f"Missing image extension: {path}")
        self.path = path
        self.ext = ext


class NoSourceBound(ImageConverterError, RuntimeError):
    def __init__(self) -> None:
        super().__init__("Source image path not set. Call bind() with a source file first.")


class WatermarkLoadFailure(ImageConverterError):
    """The watermark asset is missing or cannot be decoded."""


class EncodeFailure(ImageConverterError):
    """The codec rejected the options, or the destination could not be written."""


class CodecError(ImageConverterError):
    """libvips could not decode, transform or encode an image."""
