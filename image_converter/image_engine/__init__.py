"""Image Engine - the conversion pipeline and its stages.

This package provides:
- Source binding and output path resolution (source, output_path)
- Resize planning (resize)
- EXIF composition (metadata)
- Watermark overlay (watermark)
- Format encoding (encoder)
- The orchestrator (pipeline)

Usage:
    from image_converter.image_engine import ImageProcessor

    processor = ImageProcessor()
    processor.bind("/photos/a.jpg").convert("webp", {"resize": True, "max_width": 800})
"""

from .encoder import EncodeOptions
from .pipeline import CompletedJob, ImageJob, ImageProcessor

__all__ = ["CompletedJob", "EncodeOptions", "ImageJob", "ImageProcessor"]
