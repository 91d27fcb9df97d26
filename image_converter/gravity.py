"""Compass anchors used to place crops and overlays."""

from __future__ import annotations

from enum import Enum


class Gravity(str, Enum):
    CENTER = "center"
    NORTH = "north"
    NORTHEAST = "northeast"
    EAST = "east"
    SOUTHEAST = "southeast"
    SOUTH = "south"
    SOUTHWEST = "southwest"
    WEST = "west"
    NORTHWEST = "northwest"

    @classmethod
    def parse(cls, value: str | Gravity | None, default: Gravity | None = None) -> Gravity:
        """Parse a gravity name, accepting the top/bottom/left/right spellings.

        None (or an empty string) returns `default`, which itself defaults to CENTER.
        """
        if isinstance(value, Gravity):
            return value
        if value is None or not str(value).strip():
            return default or cls.CENTER
        key = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        key = _ALIASES.get(key, key).replace("-", "")
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown gravity: {value!r}") from None


_ALIASES = {
    "centre": "center",
    "middle": "center",
    "top": "north",
    "bottom": "south",
    "left": "west",
    "right": "east",
    "top-right": "northeast",
    "right-top": "northeast",
    "top-left": "northwest",
    "left-top": "northwest",
    "bottom-right": "southeast",
    "right-bottom": "southeast",
    "bottom-left": "southwest",
    "left-bottom": "southwest",
}
