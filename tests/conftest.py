"""Pytest configuration.

Image fixtures are built from numpy arrays and written with pyvips, so tests
that need real files skip cleanly where libvips is not installed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import numpy as np
import pytest


@pytest.fixture
def make_image(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a synthetic image: make_image("a.jpg", 300, 200, color=(r, g, b))."""
    pytest.importorskip("pyvips")
    from image_converter.image_engine.decoder import image_from_array

    def _make(name: str, width: int, height: int, color: tuple[int, ...] | None = None) -> Path:
        if color is None:
            # horizontal gradient so encoders have some detail to work on
            ramp = np.linspace(0, 255, width, dtype=np.uint8)
            arr = np.stack([np.tile(ramp, (height, 1))] * 3, axis=2)
        else:
            arr = np.empty((height, width, len(color)), dtype=np.uint8)
            arr[:, :] = color
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        image_from_array(arr).write_to_file(str(path))
        return path

    return _make


@pytest.fixture
def pipeline_log(caplog: pytest.LogCaptureFixture):
    """The project logger does not propagate; attach caplog's handler directly."""
    logger = logging.getLogger("image_converter")
    logger.addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG, logger="image_converter")
    try:
        yield caplog
    finally:
        logger.removeHandler(caplog.handler)
