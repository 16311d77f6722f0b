"""
tilelab
=======

Turn a handful of images into a tiled decorative background.

Each source image is reduced to a flat silhouette in a tint derived from the
background color, optionally bevelled with a directional emboss, and scaled
copies are scattered over a 2560x1440 grid with density, random picks and a
brick-style row offset. The result is exported as PNG.

Quick start
-----------
    from tilelab import LayoutConfig, RenderRequest, RenderSession

    session = RenderSession()
    session.render(RenderRequest(("a.png", "b.png"), LayoutConfig(grid_size=9)))
    session.export("background.png")

Command line
------------
$ python -m tilelab --out bg.png --image a.png --image https://example.com/b.png \
    --bg "#b8d4a0" --grid 7 --density 80 --scale 120 --seed 7

License: MIT
"""

from .colors import calculate_tint, parse_color, resolve_color, tint_for_background
from .compositor import Composition, Placement, compose, rng_from_seed
from .config import CANVAS_HEIGHT, CANVAS_SIZE, CANVAS_WIDTH, LayoutConfig, RenderRequest, load_config
from .errors import EmptyExportError, EmptyPoolError, LoadError, ParseColorError, TileLabError
from .export import encode_png, export_png, has_content
from .loader import ImageCache, load_image
from .pipeline import RenderResult, RenderScheduler, RenderSession, SilhouetteCache
from .silhouette import Silhouette, SourceImage, create_silhouette, emboss

__version__ = "0.1.0"
