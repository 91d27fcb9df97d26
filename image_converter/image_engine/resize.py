"""Resize planning driven by a maximum width.

The planner is pure arithmetic; `apply_resize` hands the plan to the codec.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from image_converter.logger import get_logger

from . import decoder

_logger = get_logger("resize")

FIT_NONE = "none"
# Fill the box exactly, cropping toward the most salient region
FIT_COVER = "cover"
# Fit inside the box, never enlarging the source
FIT_CONTAIN = "contain"


@dataclass(frozen=True)
class ResizePlan:
    width: int
    height: int
    fit: str
    resized: bool


def plan_resize(max_width: int, source_width: int, source_height: int, squared: bool = False) -> ResizePlan:
    """Compute the target box for `max_width` while keeping the aspect ratio.

    A source that already fits (width <= max_width and height <= the height
    implied by max_width) is passed through unchanged, squared or not.
    """
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"source dimensions must be positive, got {source_width}x{source_height}")
    if max_width <= 0:
        raise ValueError(f"max_width must be positive, got {max_width}")

    aspect_ratio = source_width / source_height
    max_height = max_width / aspect_ratio

    if source_width <= max_width and source_height <= max_height:
        _logger.warning(
            "Image is already smaller than the maximum width (%dpx). No resizing needed.", max_width
        )
        return ResizePlan(source_width, source_height, FIT_NONE, False)

    new_width = int(max_width)
    new_height = max(1, round(max_width / aspect_ratio))

    if squared:
        return ResizePlan(new_width, new_width, FIT_COVER, True)
    return ResizePlan(new_width, new_height, FIT_CONTAIN, True)


def apply_resize(image: Any, plan: ResizePlan) -> Any:
    if not plan.resized:
        return image
    if plan.fit == FIT_COVER:
        return decoder.thumbnail(image, plan.width, plan.height, size="both", crop="attention")
    return decoder.thumbnail(image, plan.width, plan.height, size="down")
