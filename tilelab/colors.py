"""
Color parsing and tint derivation.

Background colors arrive as CSS-style strings (``#b8d4a0``, ``rgb(1, 2, 3)``,
``hsl(90, 40%, 70%)``). The silhouettes are painted with a *tint* derived
from the background: slightly darker on light backgrounds, brighter on dark
ones, so the tiles always stay distinguishable from the ground.
"""

import logging
import math
from typing import Tuple

from PIL import ImageColor

from .errors import ParseColorError

log = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

# Used when a color string cannot be parsed (cornflower blue).
FALLBACK_COLOR: RGB = (100, 149, 237)

DEFAULT_DARKNESS = 0.15
MIN_BRIGHTNESS = 80
DARK_BACKGROUND_LIFT = 80


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def hex_to_rgb(hex_color: str) -> RGB:
    """Convert '#RRGGBB' or 'RRGGBB' to (r,g,b). Handles shorthand '#RGB' too."""
    h = hex_color.strip().lstrip("#")
    if len(h) == 3:
        h = "".join(c*2 for c in h)
    if len(h) != 6:
        raise ParseColorError(hex_color)
    try:
        return (int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))
    except ValueError:
        raise ParseColorError(hex_color) from None


def parse_color(value: str) -> RGB:
    """Parse a hex, rgb(), hsl() or named color into an RGB triple.

    Raises ParseColorError for anything else.
    """
    if not isinstance(value, str) or not value.strip():
        raise ParseColorError(str(value))
    text = value.strip()
    if not text.startswith("#") and len(text) in (3, 6) and all(c in "0123456789abcdefABCDEF" for c in text):
        return hex_to_rgb(text)
    try:
        rgb = ImageColor.getrgb(text)
    except ValueError:
        raise ParseColorError(value) from None
    return (rgb[0], rgb[1], rgb[2])


def resolve_color(value: str, fallback: RGB = FALLBACK_COLOR) -> RGB:
    """Like parse_color, but logs and returns ``fallback`` on malformed input."""
    try:
        return parse_color(value)
    except ParseColorError as exc:
        log.warning("%s, using fallback %s", exc, rgb_to_hex(fallback))
        return fallback


def rgb_to_hex(rgb: RGB) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def brightness(rgb: RGB) -> float:
    """Perceptual brightness (ITU-R BT.601 luma) in 0..255."""
    r, g, b = rgb
    return 0.299 * r + 0.587 * g + 0.114 * b


def tint_for_background(
    background: RGB,
    darkness: float = DEFAULT_DARKNESS,
    min_brightness: int = MIN_BRIGHTNESS,
) -> RGB:
    """Derive the silhouette tint from a background color.

    Bright backgrounds are darkened by ``darkness`` with every channel held at
    or above ``min_brightness``; dark backgrounds are lifted by a fixed amount
    instead.
    """
    if brightness(background) > min_brightness:
        r, g, b = (max(min_brightness, round_half_up(c * (1 - darkness))) for c in background)
    else:
        r, g, b = (min(255, c + DARK_BACKGROUND_LIFT) for c in background)
    return (r, g, b)


def calculate_tint(background_color: str, darkness: float = DEFAULT_DARKNESS) -> RGB:
    """Tint for a background color string; unparseable input uses the fallback color."""
    return tint_for_background(resolve_color(background_color), darkness=darkness)
