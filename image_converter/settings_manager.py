from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any

from .gravity import Gravity
from .logger import get_logger

_logger = get_logger("settings")

PRODUCT_ID = "image_converter"


@dataclass(frozen=True)
class Metadata:
    description: str | None = None
    origin: str | None = None
    author: str | None = None
    copyright: str | None = None
    keywords: str | None = None

    def __post_init__(self) -> None:
        # Keyword lists are stored as one comma separated string.
        if isinstance(self.keywords, (list, tuple)):
            object.__setattr__(self, "keywords", ", ".join(str(k) for k in self.keywords))

    def merge(self, other: Metadata | Mapping[str, Any] | None) -> Metadata:
        """Return a copy where the set fields of `other` win."""
        if other is None:
            return self
        values = asdict(other) if isinstance(other, Metadata) else dict(other)
        _check_keys(Metadata, values)
        return replace(self, **{k: v for k, v in values.items() if v is not None})

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))


@dataclass(frozen=True)
class WatermarkConfig:
    path: str | None = None
    opacity: float = 0.3
    position: Gravity = Gravity.CENTER
    margin: int = 20

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", Gravity.parse(self.position))
        opacity = float(self.opacity)
        if not 0.0 <= opacity <= 1.0:
            raise ValueError(f"watermark opacity must be within [0, 1], got {self.opacity}")
        object.__setattr__(self, "opacity", opacity)
        if int(self.margin) < 0:
            raise ValueError(f"watermark margin must be >= 0, got {self.margin}")
        object.__setattr__(self, "margin", int(self.margin))

    def merge(self, other: WatermarkConfig | Mapping[str, Any] | None) -> WatermarkConfig:
        if other is None:
            return self
        values = asdict(other) if isinstance(other, WatermarkConfig) else dict(other)
        _check_keys(WatermarkConfig, values)
        return replace(self, **{k: v for k, v in values.items() if v is not None})


@dataclass(frozen=True)
class Settings:
    max_width: int = 1200
    max_height: int = 1200
    metadata: Metadata = field(default_factory=Metadata)
    watermark: WatermarkConfig = field(default_factory=WatermarkConfig)

    def merge(self, **partial: Any) -> Settings:
        """Return new settings; metadata/watermark partials merge field by field."""
        _check_keys(Settings, partial)
        updates: dict[str, Any] = {}
        for key, value in partial.items():
            if value is None:
                continue
            if key == "metadata":
                updates[key] = self.metadata.merge(value)
            elif key == "watermark":
                updates[key] = self.watermark.merge(value)
            else:
                if int(value) <= 0:
                    raise ValueError(f"{key} must be a positive integer, got {value}")
                updates[key] = int(value)
        return replace(self, **updates)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _check_keys(kind: type, values: Mapping[str, Any]) -> None:
    known = {f.name for f in fields(kind)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"unknown {kind.__name__} field(s): {', '.join(sorted(unknown))}")


class SettingsStore:
    """Holds the processor defaults, optionally persisted as JSON.

    The current value is an immutable `Settings`; updates replace it with a
    merged copy so a job that already took a snapshot is never affected.
    """

    DEFAULTS = Settings(
        max_width=1200,
        max_height=1200,
        metadata=Metadata(
            description=f"This image was generated using {PRODUCT_ID}",
            origin="Planet Earth before midnight.",
            author=PRODUCT_ID,
            copyright=f"{PRODUCT_ID} | Image Processor",
            keywords="image, converter, processed",
        ),
        watermark=WatermarkConfig(path=None, opacity=0.3, position=Gravity.CENTER, margin=20),
    )

    def __init__(self, settings_path: str | None = None, settings: Settings | None = None):
        self.settings_path = settings_path
        self._settings: Settings = settings or self.DEFAULTS
        if settings_path:
            self.load()

    def load(self) -> None:
        if not self.settings_path or not os.path.exists(self.settings_path):
            return
        try:
            with open(self.settings_path, encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                self._settings = self.DEFAULTS.merge(**data)
                _logger.debug("settings loaded: %s", self.settings_path)
                return
            _logger.warning("settings file is not a JSON object: %s", self.settings_path)
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed: %s", e)
        self._settings = self.DEFAULTS

    def save(self) -> None:
        if not self.settings_path:
            return
        try:
            parent = os.path.dirname(self.settings_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings.to_dict(), f, ensure_ascii=False, indent=2)
            _logger.debug("settings saved: %s", self.settings_path)
        except OSError as e:
            _logger.error("settings save failed: %s", e)

    @property
    def settings(self) -> Settings:
        return self._settings

    def update(self, **partial: Any) -> Settings:
        self._settings = self._settings.merge(**partial)
        if self.settings_path:
            self.save()
        return self._settings
