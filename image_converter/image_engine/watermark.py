"""Watermark overlay.

The asset is shrunk to a fifth of its native size, its alpha is scaled by the
configured opacity, and it is blended "over" the base at a compass anchor
inset by the configured margin.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from image_converter.errors import CodecError, WatermarkLoadFailure
from image_converter.gravity import Gravity
from image_converter.logger import get_logger
from image_converter.settings_manager import WatermarkConfig

from . import decoder

_logger = get_logger("watermark")

# Bundled mark used when the settings name no asset
DEFAULT_WATERMARK = Path(__file__).resolve().parent.parent / "assets" / "watermark.png"

SHRINK_FACTOR = 5

# gravity -> (column, row); 0 = start edge, 1 = middle, 2 = end edge
_ANCHORS = {
    Gravity.NORTHWEST: (0, 0),
    Gravity.NORTH: (1, 0),
    Gravity.NORTHEAST: (2, 0),
    Gravity.WEST: (0, 1),
    Gravity.CENTER: (1, 1),
    Gravity.EAST: (2, 1),
    Gravity.SOUTHWEST: (0, 2),
    Gravity.SOUTH: (1, 2),
    Gravity.SOUTHEAST: (2, 2),
}


def _axis_offset(slot: int, base: int, over: int, margin: int) -> int:
    free = max(0, base - over)
    if slot == 0:
        pos = margin
    elif slot == 2:
        pos = base - over - margin
    else:
        pos = free // 2
    return min(max(0, pos), free)


def anchor_offset(
    gravity: Gravity | str, base_w: int, base_h: int, over_w: int, over_h: int, margin: int = 0
) -> tuple[int, int]:
    """Top-left (x, y) of an overlay anchored at `gravity`.

    Edge anchors are inset by `margin`; centered axes ignore it. The result is
    clamped so the overlay never starts outside the base.
    """
    col, row = _ANCHORS[Gravity.parse(gravity)]
    return _axis_offset(col, base_w, over_w, margin), _axis_offset(row, base_h, over_h, margin)


def load_watermark(config: WatermarkConfig, base_w: int, base_h: int) -> Any:
    """Decode and prepare the overlay; raises WatermarkLoadFailure on any problem.

    A config without a path uses the bundled DEFAULT_WATERMARK.
    """
    path = config.path or str(DEFAULT_WATERMARK)
    try:
        mark = decoder.load_image(path)
        width = max(1, round(mark.width / SHRINK_FACTOR))
        height = max(1, round(mark.height / SHRINK_FACTOR))
        mark = decoder.thumbnail(mark, width, height, size="force")
        if mark.width > base_w or mark.height > base_h:
            mark = decoder.thumbnail(mark, base_w, base_h, size="down")
        mark = decoder.to_srgb_alpha(mark)
        mark = decoder.scale_alpha(mark, config.opacity)
        return decoder.materialize(mark)
    except CodecError as e:
        raise WatermarkLoadFailure(f"cannot load watermark {path}: {e}") from e


def apply_watermark(base: Any, config: WatermarkConfig, position: Gravity | str | None = None) -> Any:
    """Composite the watermark onto `base`.

    `position` overrides `config.position` for this call only.
    """
    gravity = Gravity.parse(position, default=config.position)
    mark = load_watermark(config, base.width, base.height)
    x, y = anchor_offset(gravity, base.width, base.height, mark.width, mark.height, config.margin)
    _logger.debug(
        "watermark %s %dx%d at (%d, %d) gravity=%s",
        config.path or "default",
        mark.width,
        mark.height,
        x,
        y,
        gravity.value,
    )
    return decoder.composite_over(base, mark, x, y)
