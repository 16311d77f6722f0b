"""
Tile compositor: scatter silhouettes across a fixed-size canvas.

The canvas is split into ``grid_size x grid_size`` cells. Each cell is kept
with probability ``density / 100`` and receives a silhouette picked uniformly
from the pool, scaled so its larger side is ``tile_pixel_scale`` pixels and
centered in the cell. Odd rows are shifted right by ``row_offset_percent`` of
a cell width for a brick-like stagger. Tiles are not clipped to their cell,
so large scales overlap neighbors; they are only clipped to the canvas.

All randomness is drawn from the ``random.Random`` passed in, in row-major
cell order (density roll first, then the pick), so a seeded generator gives
a reproducible layout.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image

from .colors import RGB, resolve_color, round_half_up
from .config import CANVAS_SIZE, LayoutConfig
from .silhouette import Silhouette

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placement:
    row: int
    col: int
    center: Tuple[float, float]
    box: Tuple[int, int, int, int]   # left, top, right, bottom before canvas clipping
    source: str


@dataclass
class Composition:
    image: Image.Image
    placements: List[Placement] = field(default_factory=list)


def rng_from_seed(seed: Optional[int]) -> random.Random:
    """Return a Random instance from seed (or system)."""
    r = random.Random()
    if seed is not None:
        r.seed(int(seed))
    else:
        r.seed()
    return r


def new_canvas(background: RGB, size: Tuple[int, int] = CANVAS_SIZE) -> Image.Image:
    return Image.new("RGBA", size, color=background + (255,))


def cell_size(layout: LayoutConfig, size: Tuple[int, int] = CANVAS_SIZE) -> Tuple[float, float]:
    width, height = size
    return (width / layout.grid_size, height / layout.grid_size)


def cell_center(row: int, col: int, layout: LayoutConfig, size: Tuple[int, int] = CANVAS_SIZE) -> Tuple[float, float]:
    cell_w, cell_h = cell_size(layout, size)
    offset_x = 0.0 if row % 2 == 0 else cell_w * layout.row_offset_percent / 100
    return (col * cell_w + offset_x + cell_w / 2, row * cell_h + cell_h / 2)


def fit_size(width: int, height: int, target: float) -> Tuple[float, float]:
    """Scale (width, height) so the larger side becomes ``target``, keeping aspect."""
    scale = min(target / width, target / height)
    return (width * scale, height * scale)


def _scaled(sil: Silhouette, target: float, cache: Dict[int, Image.Image]) -> Image.Image:
    key = id(sil)
    tile = cache.get(key)
    if tile is None:
        w, h = fit_size(sil.image.width, sil.image.height, target)
        size = (max(1, round_half_up(w)), max(1, round_half_up(h)))
        tile = sil.image.resize(size, resample=Image.NEAREST)
        cache[key] = tile
    return tile


def paste_centered(canvas: Image.Image, tile: Image.Image, center: Tuple[float, float]) -> Tuple[int, int, int, int]:
    """Alpha-composite ``tile`` centered on ``center``, clipped to the canvas.

    Returns the unclipped destination box.
    """
    cx, cy = center
    left = round_half_up(cx - tile.width / 2)
    top = round_half_up(cy - tile.height / 2)
    box = (left, top, left + tile.width, top + tile.height)

    x0, y0 = max(0, left), max(0, top)
    x1, y1 = min(canvas.width, box[2]), min(canvas.height, box[3])
    if x0 < x1 and y0 < y1:
        canvas.alpha_composite(tile, dest=(x0, y0), source=(x0 - left, y0 - top, x1 - left, y1 - top))
    return box


def compose(
    pool: Sequence[Silhouette],
    layout: LayoutConfig,
    rng: Optional[random.Random] = None,
    size: Tuple[int, int] = CANVAS_SIZE,
    background: Optional[RGB] = None,
) -> Composition:
    """Render one full pass of the tiled background.

    ``background`` overrides parsing ``layout.background_color`` when the
    caller has already resolved it.
    """
    if rng is None:
        rng = rng_from_seed(None)
    if background is None:
        background = resolve_color(layout.background_color)
    canvas = new_canvas(background, size)
    result = Composition(image=canvas)

    drawable = [s for s in pool if s.image.width > 0 and s.image.height > 0]
    if not drawable:
        log.warning("no silhouettes to draw, rendering background only")
        return result

    scaled: Dict[int, Image.Image] = {}
    for row in range(layout.grid_size):
        for col in range(layout.grid_size):
            if rng.random() * 100 > layout.density:
                continue
            sil = rng.choice(drawable)
            center = cell_center(row, col, layout, size)
            tile = _scaled(sil, layout.tile_pixel_scale, scaled)
            box = paste_centered(canvas, tile, center)
            result.placements.append(Placement(row, col, center, box, sil.source))

    log.debug("placed %d of %d tiles", len(result.placements), layout.grid_size ** 2)
    return result
