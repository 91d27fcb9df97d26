from __future__ import annotations

import pytest

from image_converter.errors import EncodeFailure
from image_converter.gravity import Gravity
from image_converter.image_engine.encoder import (
    EncodeOptions,
    build_save_options,
    normalize_format,
    optimize_preset,
    resolve_target_format,
)


def test_jpg_and_jpeg_build_identical_configuration():
    opts = EncodeOptions(quality=72, progressive=True, chroma_subsampling="4:4:4", mozjpeg=True)

    assert normalize_format("jpg") == normalize_format("JPEG") == "jpeg"
    assert build_save_options("jpg", opts) == build_save_options("jpeg", opts)


def test_jpeg_options_map_to_saver_keywords():
    save = build_save_options("jpeg", EncodeOptions(quality=80, progressive=True, chroma_subsampling="4:2:0"))

    assert save == {"Q": 80, "interlace": True, "subsample_mode": "on"}


def test_png_palette_options():
    save = build_save_options("png", EncodeOptions(compression_level=9, colors=16, dither=0.5, quality=60))

    assert save == {"compression": 9, "palette": True, "Q": 60, "bitdepth": 4, "dither": 0.5}


def test_png_without_palette_ignores_quality():
    assert build_save_options("png", EncodeOptions(quality=50)) == {}


def test_webp_and_gif_options():
    webp = build_save_options("webp", EncodeOptions(quality=70, lossless=False, near_lossless=True, effort=6))
    gif = build_save_options("gif", EncodeOptions(colors=256, dither=1.0, effort=7, progressive=False))

    assert webp == {"Q": 70, "lossless": False, "near_lossless": True, "effort": 6}
    assert gif == {"interlace": False, "bitdepth": 8, "dither": 1.0, "effort": 7}


def test_tiff_quality_switches_to_jpeg_compression():
    assert build_save_options("tif", EncodeOptions(quality=90)) == {"Q": 90, "compression": "jpeg"}


@pytest.mark.parametrize(
    "opts",
    [
        EncodeOptions(quality=0),
        EncodeOptions(quality=101),
        EncodeOptions(compression_level=10),
        EncodeOptions(colors=1),
        EncodeOptions(dither=1.5),
        EncodeOptions(chroma_subsampling="4:2:2"),
    ],
)
def test_out_of_range_options_are_rejected(opts):
    with pytest.raises(EncodeFailure):
        build_save_options("png", opts)


def test_webp_effort_range():
    with pytest.raises(EncodeFailure):
        build_save_options("webp", EncodeOptions(effort=7))


def test_unknown_target_format():
    with pytest.raises(EncodeFailure):
        normalize_format("bmp")


def test_optimize_mode_keeps_source_format():
    assert resolve_target_format("webp", "png", optimize=True) == "png"
    assert resolve_target_format(None, "jpg", optimize=True) == "jpeg"
    assert resolve_target_format("webp", "png") == "webp"
    assert resolve_target_format("/out/a.JPG", "png") == "jpeg"


def test_optimize_presets():
    assert optimize_preset("jpg") == {"mozjpeg": True, "progressive": True}
    assert optimize_preset("png") == {"compression_level": 8, "progressive": True}
    assert optimize_preset("webp") == {"near_lossless": True, "effort": 6}
    assert optimize_preset("gif") == {}


def test_options_from_dict_rejects_unknown_keys():
    with pytest.raises(EncodeFailure, match="maxWidth"):
        EncodeOptions.from_dict({"maxWidth": 100})


def test_options_from_dict_normalizes_delay():
    opts = EncodeOptions.from_dict({"resize": True, "delay": [100, 200]})

    assert opts.resize is True
    assert opts.delay == (100, 200)
    assert opts.to_dict() == {
        "resize": True,
        "squared": False,
        "watermark": False,
        "optimize": False,
        "delay": (100, 200),
    }


def test_watermark_position_is_normalized_to_gravity():
    assert EncodeOptions(watermark_position="top-left").watermark_position is Gravity.NORTHWEST
    assert EncodeOptions.from_dict({"watermark_position": "South_East"}).watermark_position is Gravity.SOUTHEAST


def test_unknown_watermark_position_is_an_encode_failure():
    with pytest.raises(EncodeFailure, match="watermark_position"):
        EncodeOptions.from_dict({"watermark": True, "watermark_position": "upstairs"})
