"""Command line entry point: render a tiled background PNG from a list of images."""

import argparse
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .compositor import rng_from_seed
from .config import LayoutConfig, RenderRequest, load_config
from .errors import EmptyExportError
from .export import export_png
from .log import configure_logging, get_logger
from .pipeline import RenderSession

# argparse dest -> LayoutConfig field
_LAYOUT_FLAGS = {
    "bg": "background_color",
    "grid": "grid_size",
    "density": "density",
    "scale": "tile_pixel_scale",
    "spacing": "spacing",
    "row_offset": "row_offset_percent",
    "emboss_intensity": "emboss_intensity",
    "emboss_direction": "emboss_direction",
    "emboss_depth": "emboss_depth",
}


def _read_images_file(path: str) -> List[str]:
    with open(path, "r", encoding="utf-8") as fh:
        return [line.strip() for line in fh if line.strip() and not line.lstrip().startswith("#")]


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="tilelab", description="Generate tiled silhouette background PNGs (2560x1440)")
    ap.add_argument("--out", required=True, help="Output PNG path (a directory gets a timestamped name)")
    ap.add_argument("--image", dest="images", action="append", default=[], help="Image URL or path; repeatable")
    ap.add_argument("--images-file", default=None, help="Text file with one image URL or path per line")
    ap.add_argument("--config", default=None, help="JSON file with layout settings and an 'images' list")
    ap.add_argument("--bg", default=None, help="Background color (hex, rgb() or hsl())")
    ap.add_argument("--grid", type=int, default=None, help="Grid size N for an NxN layout")
    ap.add_argument("--density", type=float, default=None, help="0..100 chance that a cell gets a tile")
    ap.add_argument("--scale", type=float, default=None, help="Tile size in pixels (larger side)")
    ap.add_argument("--spacing", type=float, default=None, help="Spacing in pixels (currently unused by the layout)")
    ap.add_argument("--row-offset", type=float, default=None, help="0..100 percent of a cell width to shift odd rows")
    ap.add_argument("--emboss-intensity", type=float, default=None, help="0..100, 0 disables emboss")
    ap.add_argument("--emboss-direction", type=float, default=None, help="Light direction in degrees, 0..360")
    ap.add_argument("--emboss-depth", type=float, default=None, help="Edge search radius in pixels, 0..10")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--preview", default=None, help="Also write the preview buffer to this path")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def build_request(args: argparse.Namespace, ap: argparse.ArgumentParser) -> RenderRequest:
    base = RenderRequest(image_urls=())
    if args.config:
        try:
            base = load_config(args.config)
        except (OSError, ValueError, TypeError) as exc:
            ap.error(f"--config: {exc}")

    images = list(base.image_urls) + list(args.images)
    if args.images_file:
        try:
            images += _read_images_file(args.images_file)
        except OSError as exc:
            ap.error(f"--images-file: {exc}")

    overrides: Dict[str, object] = {
        name: getattr(args, dest) for dest, name in _LAYOUT_FLAGS.items() if getattr(args, dest) is not None
    }
    try:
        layout: LayoutConfig = replace(base.layout, **overrides)
    except ValueError as exc:
        ap.error(str(exc))

    request = RenderRequest(image_urls=tuple(images), layout=layout)
    if not request.image_urls:
        ap.error("at least one --image, --images-file or config 'images' entry is required")
    return request


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    log = get_logger()

    request = build_request(args, ap)
    session = RenderSession(rng_factory=lambda: rng_from_seed(args.seed))
    result = session.render(request)

    try:
        out = session.export(args.out)
        if args.preview:
            export_png(result.preview, Path(args.preview))
    except EmptyExportError as exc:
        log.error("%s", exc)
        return 1
    print(out)
    return 0
