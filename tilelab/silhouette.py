"""
Silhouette extraction and emboss shading.

A source image becomes a flat, tint-colored cut-out: every pixel is either
fully opaque tint or fully transparent. Shape detection falls through three
tiers so that any decodable image yields something drawable:

    alpha       pixels with alpha > 10
    brightness  dark pixels ((r+g+b)/3 < 200) on an opaque field (alpha > 50)
    solid       the whole image rectangle

An optional emboss then shades the pixels along the shape boundary as if lit
from ``direction`` degrees, giving a cheap bevel without a convolution kernel.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from PIL import Image

from .colors import RGB

ALPHA_THRESHOLD = 10
FALLBACK_BRIGHTNESS = 200
FALLBACK_ALPHA = 50

EMBOSS_STRENGTH = 0.4
EMBOSS_MIN_CHANNEL = 20
EMBOSS_MAX_CHANNEL = 255

TIER_ALPHA = "alpha"
TIER_BRIGHTNESS = "brightness"
TIER_SOLID = "solid"


@dataclass(frozen=True)
class SourceImage:
    """A decoded RGBA raster and the URL or path it came from."""
    source: str
    image: Image.Image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @classmethod
    def from_image(cls, source: str, image: Image.Image) -> "SourceImage":
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(source=source, image=image)


@dataclass(frozen=True)
class Silhouette:
    source: str
    image: Image.Image
    tint: RGB
    tier: str

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size


# ---------------------------- Shape masks -----------------------------------

def alpha_mask(pixels: np.ndarray) -> np.ndarray:
    return pixels[..., 3] > ALPHA_THRESHOLD


def brightness_mask(pixels: np.ndarray) -> np.ndarray:
    rgb_sum = pixels[..., :3].astype(np.int32).sum(axis=2)
    # (r+g+b)/3 < 200 without leaving integer arithmetic
    return (rgb_sum < 3 * FALLBACK_BRIGHTNESS) & (pixels[..., 3] > FALLBACK_ALPHA)


def shape_mask(pixels: np.ndarray) -> Tuple[np.ndarray, str]:
    """Return the boolean shape mask and the tier that produced it."""
    mask = alpha_mask(pixels)
    if mask.any():
        return mask, TIER_ALPHA
    mask = brightness_mask(pixels)
    if mask.any():
        return mask, TIER_BRIGHTNESS
    return np.ones(pixels.shape[:2], dtype=bool), TIER_SOLID


def paint(mask: np.ndarray, tint: RGB) -> np.ndarray:
    out = np.zeros(mask.shape + (4,), dtype=np.uint8)
    out[mask] = (tint[0], tint[1], tint[2], 255)
    return out


# ---------------------------- Emboss ----------------------------------------

def _shifted(padded: np.ndarray, dx: int, dy: int, pad: int, h: int, w: int) -> np.ndarray:
    """mask[y+dy, x+dx] for every (x, y), given mask padded with False by ``pad``."""
    return padded[pad + dy:pad + dy + h, pad + dx:pad + dx + w]


def emboss(
    pixels: np.ndarray,
    tint: RGB,
    intensity: float,
    direction: float,
    depth: float,
) -> np.ndarray:
    """Shade boundary pixels of a painted silhouette.

    For every opaque pixel off the 1-pixel image border, each fully
    transparent neighbor within ``floor(depth)`` contributes ``(-dx, -dy)`` to
    a surface normal. Pixels with a nonzero normal are lit by the dot product
    with the light vector ``(cos(direction), sin(direction))``; everything
    else is returned unchanged. Neighbor tests read the unshaded input.
    """
    out = pixels.copy()
    h, w = pixels.shape[:2]
    radius = int(math.floor(depth))
    if intensity <= 0 or radius < 1 or h < 3 or w < 3:
        return out

    opaque = pixels[..., 3] == 255
    clear = pixels[..., 3] == 0

    clear_padded = np.pad(clear, radius, mode="constant", constant_values=False)
    normal_x = np.zeros((h, w), dtype=np.float64)
    normal_y = np.zeros((h, w), dtype=np.float64)
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            if dx == 0 and dy == 0:
                continue
            neighbor_clear = _shifted(clear_padded, dx, dy, radius, h, w)
            normal_x -= dx * neighbor_clear
            normal_y -= dy * neighbor_clear

    inner = np.zeros((h, w), dtype=bool)
    inner[1:-1, 1:-1] = True
    length = np.hypot(normal_x, normal_y)
    lit = opaque & inner & (length > 0)
    if not lit.any():
        return out

    angle = math.radians(direction)
    light_x, light_y = math.cos(angle), math.sin(angle)
    dot = (normal_x[lit] * light_x + normal_y[lit] * light_y) / length[lit]
    factor = np.clip(dot, -1.0, 1.0) * (intensity / 100.0) * EMBOSS_STRENGTH

    base = np.asarray(tint, dtype=np.float64)
    shaded = np.floor(base[np.newaxis, :] * (1.0 + factor[:, np.newaxis]) + 0.5)
    shaded = np.clip(shaded, EMBOSS_MIN_CHANNEL, EMBOSS_MAX_CHANNEL).astype(np.uint8)
    out[lit, :3] = shaded
    return out


# ---------------------------- High-level API --------------------------------

def create_silhouette(
    src: SourceImage,
    tint: RGB,
    emboss_intensity: float = 0,
    emboss_direction: float = 45,
    emboss_depth: float = 1,
) -> Silhouette:
    """Convert ``src`` to a tint-colored silhouette, embossed when intensity > 0.

    The solid-rectangle tier is never embossed.
    """
    if src.width == 0 or src.height == 0:
        return Silhouette(src.source, Image.new("RGBA", src.image.size), tint, TIER_SOLID)
    pixels = np.asarray(src.image.convert("RGBA"), dtype=np.uint8)
    mask, tier = shape_mask(pixels)
    painted = paint(mask, tint)
    if emboss_intensity > 0 and tier != TIER_SOLID:
        painted = emboss(painted, tint, emboss_intensity, emboss_direction, emboss_depth)
    return Silhouette(
        source=src.source,
        image=Image.fromarray(painted),
        tint=tint,
        tier=tier,
    )
