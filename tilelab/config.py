"""Layout settings for a render pass and JSON config loading."""

import json
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

CANVAS_WIDTH = 2560
CANVAS_HEIGHT = 1440
CANVAS_SIZE: Tuple[int, int] = (CANVAS_WIDTH, CANVAS_HEIGHT)

DEFAULT_DEBOUNCE_S = 0.5


@dataclass(frozen=True)
class LayoutConfig:
    background_color: str = "#b8d4a0"
    grid_size: int = 7                 # N x N cells
    density: float = 100               # 0..100, chance a cell receives a tile
    tile_pixel_scale: float = 120      # larger tile side in pixels
    spacing: float = 20                # accepted but not used by the layout
    row_offset_percent: float = 50     # odd-row stagger, percent of a cell width
    emboss_intensity: float = 30       # 0..100, 0 disables emboss
    emboss_direction: float = 45       # light direction in degrees
    emboss_depth: float = 1            # neighbor radius, floored

    def __post_init__(self):
        if not isinstance(self.grid_size, int) or isinstance(self.grid_size, bool) or self.grid_size < 1:
            raise ValueError(f"grid_size must be an integer >= 1, got {self.grid_size!r}")
        _check_range("density", self.density, 0, 100)
        _check_range("row_offset_percent", self.row_offset_percent, 0, 100)
        _check_range("emboss_intensity", self.emboss_intensity, 0, 100)
        _check_range("emboss_depth", self.emboss_depth, 0, 10)
        if not 0 <= self.emboss_direction < 360:
            raise ValueError(f"emboss_direction must be in [0, 360), got {self.emboss_direction!r}")
        if not math.isfinite(self.tile_pixel_scale) or self.tile_pixel_scale <= 0:
            raise ValueError(f"tile_pixel_scale must be a finite positive number, got {self.tile_pixel_scale!r}")
        if not math.isfinite(self.spacing) or self.spacing < 0:
            raise ValueError(f"spacing must be a finite non-negative number, got {self.spacing!r}")

    @property
    def emboss_key(self) -> Tuple[float, float, float]:
        return (self.emboss_intensity, self.emboss_direction, self.emboss_depth)


def _check_range(name: str, value: float, lo: float, hi: float) -> None:
    if not lo <= value <= hi:
        raise ValueError(f"{name} must be in [{lo}, {hi}], got {value!r}")


@dataclass(frozen=True)
class RenderRequest:
    """Everything one render pass needs: the image sources and the layout."""
    image_urls: Tuple[str, ...]
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    def __post_init__(self):
        urls = tuple(u.strip() for u in self.image_urls if isinstance(u, str) and u.strip())
        object.__setattr__(self, "image_urls", urls)


# Keys as the browser front end names them.
_ALIASES = {
    "backgroundColor": "background_color",
    "gridSize": "grid_size",
    "sparsity": "density",
    "scale": "tile_pixel_scale",
    "tilePixelScale": "tile_pixel_scale",
    "rowOffset": "row_offset_percent",
    "rowOffsetPercent": "row_offset_percent",
    "embossIntensity": "emboss_intensity",
    "embossDirection": "emboss_direction",
    "embossDepth": "emboss_depth",
}

_LAYOUT_FIELDS = {f.name for f in fields(LayoutConfig)}


def layout_from_dict(data: Dict[str, Any]) -> LayoutConfig:
    """Build a LayoutConfig from snake_case or camelCase keys; unknown keys raise ValueError."""
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        name = _ALIASES.get(key, key)
        if name not in _LAYOUT_FIELDS:
            raise ValueError(f"Unknown layout setting: {key!r}")
        kwargs[name] = value
    return LayoutConfig(**kwargs)


def load_config(path: Union[str, Path]) -> RenderRequest:
    """Read a JSON config file.

    The file is an object holding layout settings plus an optional
    ``images`` (or ``imageUrls``) list of URLs/paths.
    """
    with open(path, "r", encoding="utf-8") as jf:
        data = json.load(jf)
    if not isinstance(data, dict):
        raise ValueError("config JSON must be an object")
    data = dict(data)
    images: List[str] = data.pop("images", None) or data.pop("imageUrls", None) or []
    data.pop("imageUrls", None)
    if not isinstance(images, list) or not all(isinstance(u, str) for u in images):
        raise ValueError("config 'images' must be a list of strings")
    return RenderRequest(image_urls=tuple(images), layout=layout_from_dict(data))
