"""Format-specific encoding.

`EncodeOptions` is the per-job option bag. `build_save_options` turns the
format sub-options into libvips saver keywords; options that do not apply to
the target format are ignored.
"""

from __future__ import annotations

import contextlib
import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from image_converter.errors import CodecError, EncodeFailure
from image_converter.file_operations import FileIO, LocalFileIO
from image_converter.gravity import Gravity
from image_converter.logger import get_logger
from image_converter.path_utils import ext_of

from . import decoder
from .metadata import EmbeddedMetadata, apply_text_fields, embed_exif
from .output_path import is_bare_format

_logger = get_logger("encoder")

TARGET_FORMATS = frozenset({"jpeg", "png", "webp", "tiff", "gif"})
_FORMAT_ALIASES = {"jpg": "jpeg", "tif": "tiff"}
_CHROMA_MODES = {"4:4:4": "off", "4:2:0": "on"}
_ANIMATED_FORMATS = frozenset({"gif", "webp"})
_PNG_BITDEPTHS = (1, 2, 4, 8)


@dataclass(frozen=True)
class EncodeOptions:
    # pipeline flags
    resize: bool = False
    max_width: int | None = None
    squared: bool = False
    watermark: bool = False
    watermark_position: Gravity | str | None = None
    optimize: bool = False
    suffix: str | None = None
    # format sub-options
    quality: int | None = None
    progressive: bool | None = None
    compression_level: int | None = None
    chroma_subsampling: str | None = None
    lossless: bool | None = None
    near_lossless: bool | None = None
    effort: int | None = None
    palette: bool | None = None
    colors: int | None = None
    dither: float | None = None
    loop: int | None = None
    delay: tuple[int, ...] | None = None
    mozjpeg: bool | None = None

    def __post_init__(self) -> None:
        if self.delay is not None and not isinstance(self.delay, tuple):
            object.__setattr__(self, "delay", tuple(int(d) for d in self.delay))
        if self.watermark_position is not None:
            try:
                position = Gravity.parse(self.watermark_position)
            except ValueError as e:
                raise EncodeFailure(f"invalid watermark_position: {e}") from e
            object.__setattr__(self, "watermark_position", position)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> EncodeOptions:
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise EncodeFailure(f"unknown encode option(s): {', '.join(sorted(unknown))}")
        return cls(**data)

    def merged(self, **changes: Any) -> EncodeOptions:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def normalize_format(fmt: str) -> str:
    """Lowercase, strip a leading dot and map aliases ("jpg" -> "jpeg")."""
    key = str(fmt or "").strip().lstrip(".").lower()
    key = _FORMAT_ALIASES.get(key, key)
    if key not in TARGET_FORMATS:
        raise EncodeFailure(f"unsupported target format: {fmt!r}")
    return key


def resolve_target_format(path_or_format: str | None, source_ext: str, optimize: bool = False) -> str:
    """Optimize mode keeps the source format; otherwise the token decides."""
    if optimize:
        return normalize_format(source_ext)
    if path_or_format is None:
        raise EncodeFailure("an output path or target format is required")
    token = str(path_or_format).strip()
    return normalize_format(token if is_bare_format(token) else ext_of(token))


def optimize_preset(source_ext: str) -> dict[str, Any]:
    """Size-oriented defaults used when re-encoding a file in its own format."""
    fmt = normalize_format(source_ext)
    if fmt == "jpeg":
        return {"mozjpeg": True, "progressive": True}
    if fmt == "png":
        return {"compression_level": 8, "progressive": True}
    if fmt == "webp":
        return {"near_lossless": True, "effort": 6}
    return {}


def _check_range(name: str, value: float | None, low: float, high: float) -> None:
    if value is not None and not low <= value <= high:
        raise EncodeFailure(f"{name} must be within {low}-{high}, got {value}")


def _bitdepth(colors: int, allowed: tuple[int, ...] | None = None) -> int:
    depth = max(1, math.ceil(math.log2(colors)))
    if allowed:
        depth = next(d for d in allowed if d >= depth)
    return depth


def build_save_options(fmt: str, options: EncodeOptions | None = None) -> dict[str, Any]:
    """Translate `options` into saver keywords for `fmt` ("jpg" and "jpeg" map alike)."""
    fmt = normalize_format(fmt)
    o = options or EncodeOptions()

    _check_range("quality", o.quality, 1, 100)
    _check_range("compression_level", o.compression_level, 0, 9)
    _check_range("colors", o.colors, 2, 256)
    _check_range("dither", o.dither, 0.0, 1.0)
    if o.chroma_subsampling is not None and o.chroma_subsampling not in _CHROMA_MODES:
        raise EncodeFailure(f"chroma_subsampling must be one of {sorted(_CHROMA_MODES)}, got {o.chroma_subsampling!r}")

    save: dict[str, Any] = {}
    if fmt == "jpeg":
        if o.quality is not None:
            save["Q"] = o.quality
        if o.progressive is not None:
            save["interlace"] = o.progressive
        if o.chroma_subsampling is not None:
            save["subsample_mode"] = _CHROMA_MODES[o.chroma_subsampling]
        if o.mozjpeg:
            save.update(
                trellis_quant=True,
                overshoot_deringing=True,
                optimize_scans=True,
                optimize_coding=True,
                quant_table=3,
            )
    elif fmt == "png":
        if o.compression_level is not None:
            save["compression"] = o.compression_level
        if o.progressive is not None:
            save["interlace"] = o.progressive
        if o.palette or o.colors is not None:
            _check_range("effort", o.effort, 1, 10)
            save["palette"] = True
            if o.quality is not None:
                save["Q"] = o.quality
            if o.colors is not None:
                save["bitdepth"] = _bitdepth(o.colors, _PNG_BITDEPTHS)
            if o.dither is not None:
                save["dither"] = o.dither
            if o.effort is not None:
                save["effort"] = o.effort
    elif fmt == "webp":
        _check_range("effort", o.effort, 0, 6)
        if o.quality is not None:
            save["Q"] = o.quality
        if o.lossless is not None:
            save["lossless"] = o.lossless
        if o.near_lossless is not None:
            save["near_lossless"] = o.near_lossless
        if o.effort is not None:
            save["effort"] = o.effort
    elif fmt == "gif":
        _check_range("effort", o.effort, 1, 10)
        if o.progressive is not None:
            save["interlace"] = o.progressive
        if o.colors is not None:
            save["bitdepth"] = _bitdepth(o.colors)
        if o.dither is not None:
            save["dither"] = o.dither
        if o.effort is not None:
            save["effort"] = o.effort
    elif fmt == "tiff":
        if o.quality is not None:
            save["Q"] = o.quality
            save["compression"] = "jpeg"
    return save


def apply_animation_fields(image: Any, fmt: str, options: EncodeOptions) -> Any:
    """Attach loop count / frame delays, which libvips reads from image fields."""
    if normalize_format(fmt) not in _ANIMATED_FORMATS:
        return image
    if options.loop is not None:
        if options.loop < 0:
            raise EncodeFailure(f"loop must be >= 0, got {options.loop}")
        image = decoder.set_int_field(image, "loop", options.loop)
    if options.delay:
        pages = decoder.page_count(image)
        delays = list(options.delay[:pages])
        delays += [delays[-1]] * (pages - len(delays))
        image = decoder.set_int_array_field(image, "delay", delays)
    return image


def encode(
    image: Any,
    fmt: str,
    output_path: str,
    options: EncodeOptions | None = None,
    fileio: FileIO | None = None,
    metadata: EmbeddedMetadata | None = None,
) -> int:
    """Encode `image` and write it to `output_path`; returns the byte count.

    `metadata` is written into the encoded bytes before anything reaches disk.
    """
    options = options or EncodeOptions()
    fileio = fileio or LocalFileIO()
    fmt = normalize_format(fmt)
    save = build_save_options(fmt, options)
    try:
        image = apply_animation_fields(image, fmt, options)
        image = apply_text_fields(image, metadata)
        data = decoder.encode_to_bytes(image, fmt, **save)
    except CodecError as e:
        raise EncodeFailure(f"cannot encode {fmt}: {e}") from e
    data = embed_exif(data, fmt, metadata)
    existed = fileio.exists(output_path)
    try:
        fileio.write_bytes(output_path, data)
    except OSError as e:
        if not existed:
            # a non-atomic FileIO may have left a truncated file behind
            with contextlib.suppress(OSError):
                fileio.remove(output_path)
        raise EncodeFailure(f"cannot write {output_path}: {e}") from e
    _logger.info("wrote %s (%s, %d bytes)", output_path, fmt, len(data))
    return len(data)
