from .errors import (
    CodecError,
    EncodeFailure,
    ImageConverterError,
    NoSourceBound,
    UnsupportedSourceFormat,
    WatermarkLoadFailure,
)
from .gravity import Gravity
from .image_engine import CompletedJob, EncodeOptions, ImageProcessor
from .settings_manager import Metadata, Settings, SettingsStore, WatermarkConfig

__version__ = "0.1.0"

__all__ = [
    "CodecError",
    "CompletedJob",
    "EncodeFailure",
    "EncodeOptions",
    "Gravity",
    "ImageConverterError",
    "ImageProcessor",
    "Metadata",
    "NoSourceBound",
    "Settings",
    "SettingsStore",
    "UnsupportedSourceFormat",
    "WatermarkConfig",
    "WatermarkLoadFailure",
]
