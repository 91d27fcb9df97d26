"""Codec backend built on pyvips.

Every libvips call made by the pipeline goes through this module so the rest
of the package deals in plain values and `CodecError`.
"""

from __future__ import annotations

import contextlib
from typing import Any

import numpy as np

from image_converter.errors import CodecError
from image_converter.logger import get_logger

_logger = get_logger("decoder")

UCHAR_MAX = 255

# Saver suffixes understood by write_to_buffer, keyed by normalized format
_BUFFER_SUFFIX = {
    "jpeg": ".jpg",
    "png": ".png",
    "webp": ".webp",
    "tiff": ".tif",
    "gif": ".gif",
}

_pyvips: Any | None = None


def _get_pyvips_module() -> Any:
    global _pyvips
    if _pyvips is None:
        import pyvips  # type: ignore

        # Jobs never revisit the same pixels, so the operation cache only grows memory
        with contextlib.suppress(Exception):
            pyvips.cache_set_max(0)
            pyvips.cache_set_max_mem(0)
            pyvips.cache_set_max_files(0)
        _pyvips = pyvips
    return _pyvips


def _codec_call(what: str, fn, *args, **kwargs):
    pyvips = _get_pyvips_module()
    try:
        return fn(*args, **kwargs)
    except pyvips.Error as e:
        raise CodecError(f"{what} failed: {e.message.strip() or e}") from e


def load_image(path: str) -> Any:
    """Decode the first frame of `path`; JPEGs are auto-rotated from EXIF orientation."""
    pyvips = _get_pyvips_module()
    if path.lower().endswith((".jpg", ".jpeg")):
        return _codec_call(f"load {path}", pyvips.Image.new_from_file, path, autorotate=True)
    return _codec_call(f"load {path}", pyvips.Image.new_from_file, path)


def thumbnail(image: Any, width: int, height: int, size: str = "both", crop: str | None = None) -> Any:
    """Resize `image` into a width x height box.

    `size` is one of "both", "up", "down", "force"; a `crop` strategy such as
    "attention" or "centre" fills the box exactly instead of fitting inside it.
    """
    kwargs: dict[str, Any] = {"height": int(height), "size": size}
    if crop:
        kwargs["crop"] = crop
    return _codec_call("thumbnail", image.thumbnail_image, int(width), **kwargs)


def to_srgb_alpha(image: Any) -> Any:
    """Return an 8-bit sRGB copy of `image` with an alpha band."""
    out = _codec_call("colourspace", image.colourspace, "srgb")
    if out.format != "uchar":
        out = out.cast("uchar")
    if not out.hasalpha():
        out = out.bandjoin(UCHAR_MAX)
    return out


def scale_alpha(image: Any, factor: float) -> Any:
    """Multiply the alpha band of an sRGB+alpha image by `factor`."""
    multipliers = [1.0] * (image.bands - 1) + [float(factor)]
    return _codec_call("scale alpha", lambda: (image * multipliers).cast("uchar"))


def composite_over(base: Any, overlay: Any, x: int, y: int) -> Any:
    """Alpha-blend `overlay` onto `base` at (x, y), keeping the base band layout."""
    out = _codec_call("composite", base.composite2, overlay, "over", x=int(x), y=int(y))
    if not base.hasalpha() and out.hasalpha():
        out = out.flatten()
    if out.format != base.format:
        out = out.cast(base.format)
    return out


def set_string_field(image: Any, name: str, value: str) -> Any:
    pyvips = _get_pyvips_module()
    out = image.copy()
    out.set_type(pyvips.GValue.gstr_type, name, str(value))
    return out


def set_int_field(image: Any, name: str, value: int) -> Any:
    pyvips = _get_pyvips_module()
    out = image.copy()
    out.set_type(pyvips.GValue.gint_type, name, int(value))
    return out


def set_int_array_field(image: Any, name: str, values: list[int]) -> Any:
    pyvips = _get_pyvips_module()
    out = image.copy()
    out.set_type(pyvips.GValue.array_int_type, name, [int(v) for v in values])
    return out


def get_blob_field(image: Any, name: str) -> bytes | None:
    if image.get_typeof(name) == 0:
        return None
    return bytes(image.get(name))


def page_count(image: Any) -> int:
    if image.get_typeof("n-pages") == 0:
        return 1
    return max(1, int(image.get("n-pages")))


def encode_to_bytes(image: Any, fmt: str, **save_options: Any) -> bytes:
    """Encode `image` with the saver for the normalized format `fmt`."""
    suffix = _BUFFER_SUFFIX.get(fmt)
    if suffix is None:
        raise CodecError(f"no saver for format: {fmt}")
    _logger.debug("encode %s %s", fmt, save_options)
    return bytes(_codec_call(f"encode {fmt}", image.write_to_buffer, suffix, **save_options))


def image_from_array(array: np.ndarray) -> Any:
    """Wrap an (H, W, C) uint8 array as a pyvips image."""
    pyvips = _get_pyvips_module()
    arr = np.ascontiguousarray(array, dtype=np.uint8)
    if arr.ndim == 2:
        arr = arr[:, :, None]
    height, width, bands = arr.shape
    return pyvips.Image.new_from_memory(arr.tobytes(), width, height, bands, "uchar")


def image_to_array(image: Any) -> np.ndarray:
    """Return the pixels of an 8-bit image as an (H, W, C) uint8 array."""
    if image.format != "uchar":
        image = image.cast("uchar")
    mem = image.write_to_memory()
    return np.frombuffer(mem, dtype=np.uint8).reshape(image.height, image.width, image.bands).copy()


def materialize(image: Any) -> Any:
    """Render `image` into memory so decode errors surface now, not at save time."""
    return _codec_call("decode", image.copy_memory)
