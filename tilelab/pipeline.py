"""
Render pipeline: load sources, derive silhouettes, compose, keep the latest result.

A RenderSession owns the image cache, the silhouette cache and the most
recently completed render. Every call to ``render`` takes a new generation
number; a pass that finds a newer generation has started is abandoned and
never replaces the stored result. RenderScheduler adds debouncing on top so
that a burst of setting changes produces a single render.
"""

import logging
import random
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from PIL import Image

from .colors import RGB, resolve_color, tint_for_background
from .compositor import Placement, compose, rng_from_seed
from .config import CANVAS_SIZE, DEFAULT_DEBOUNCE_S, LayoutConfig, RenderRequest
from .errors import EmptyExportError, EmptyPoolError, TileLabError
from .export import export_png
from .loader import ImageCache
from .silhouette import Silhouette, SourceImage, create_silhouette

log = logging.getLogger(__name__)

SilhouetteKey = Tuple[str, RGB, float, float, float]


class SilhouetteCache:
    """Silhouettes keyed by (source, tint, emboss intensity, direction, depth).

    ``build`` computes misses and evicts every entry outside the requested
    key set, so the cache only ever holds the current pass's pool.
    """

    def __init__(self):
        self._entries: Dict[SilhouetteKey, Silhouette] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def key(source: str, tint: RGB, layout: LayoutConfig) -> SilhouetteKey:
        return (source,) + (tint,) + layout.emboss_key

    def build(self, images: Sequence[SourceImage], tint: RGB, layout: LayoutConfig) -> List[Silhouette]:
        with self._lock:
            pool = []
            wanted = {}
            for src in images:
                k = self.key(src.source, tint, layout)
                sil = self._entries.get(k)
                if sil is None:
                    self.misses += 1
                    sil = create_silhouette(
                        src, tint,
                        emboss_intensity=layout.emboss_intensity,
                        emboss_direction=layout.emboss_direction,
                        emboss_depth=layout.emboss_depth,
                    )
                    log.debug("silhouette for %s via %s tier", src.source, sil.tier)
                else:
                    self.hits += 1
                wanted[k] = sil
                pool.append(sil)
            self._entries = wanted
            return pool


@dataclass
class RenderResult:
    export: Image.Image
    preview: Image.Image
    placements: List[Placement]
    tint: RGB
    generation: int
    errors: List[TileLabError] = field(default_factory=list)


class RenderSession:

    def __init__(
        self,
        images: Optional[ImageCache] = None,
        rng_factory: Callable[[], random.Random] = lambda: rng_from_seed(None),
        size: Tuple[int, int] = CANVAS_SIZE,
    ):
        self.images = images if images is not None else ImageCache()
        self.silhouettes = SilhouetteCache()
        self.size = size
        self._rng_factory = rng_factory
        self._generation = 0
        self._latest: Optional[RenderResult] = None
        self._state_lock = threading.Lock()
        self._work_lock = threading.Lock()

    @property
    def generation(self) -> int:
        with self._state_lock:
            return self._generation

    @property
    def latest(self) -> Optional[RenderResult]:
        with self._state_lock:
            return self._latest

    def begin(self) -> int:
        """Start a new generation, marking every pass in flight as stale."""
        with self._state_lock:
            self._generation += 1
            return self._generation

    def is_current(self, generation: int) -> bool:
        with self._state_lock:
            return generation == self._generation

    def render(self, request: RenderRequest, rng: Optional[random.Random] = None,
               generation: Optional[int] = None) -> Optional[RenderResult]:
        """Run one full pass. Returns None if a newer pass superseded this one."""
        gen = generation if generation is not None else self.begin()
        layout = request.layout
        with self._work_lock:
            if not self.is_current(gen):
                log.debug("render %d superseded before start", gen)
                return None

            sources, load_errors = self.images.load_all(request.image_urls)
            errors: List[TileLabError] = list(load_errors)
            if not self.is_current(gen):
                log.debug("render %d superseded after loading", gen)
                return None

            background = resolve_color(layout.background_color)
            tint = tint_for_background(background)
            pool = self.silhouettes.build(sources, tint, layout)
            if not pool:
                err = EmptyPoolError(f"none of {len(request.image_urls)} image(s) loaded")
                log.warning("%s, drawing background only", err)
                errors.append(err)

            composition = compose(
                pool, layout, rng if rng is not None else self._rng_factory(), self.size, background=background,
            )
            result = RenderResult(
                export=composition.image,
                preview=composition.image.copy(),
                placements=composition.placements,
                tint=tint,
                generation=gen,
                errors=errors,
            )

            with self._state_lock:
                if gen != self._generation:
                    log.debug("render %d superseded before commit", gen)
                    return None
                self._latest = result
        log.info("render %d: %d tiles from %d image(s), %d error(s)",
                 gen, len(result.placements), len(pool), len(errors))
        return result

    def export(self, path: Union[str, Path]) -> Path:
        """Write the export buffer of the most recent completed render."""
        result = self.latest
        if result is None:
            raise EmptyExportError("Export failed: nothing has been rendered yet")
        return export_png(result.export, path)


class RenderScheduler:
    """Debounce render requests; only the last one in a quiet window runs."""

    def __init__(
        self,
        session: RenderSession,
        delay_s: float = DEFAULT_DEBOUNCE_S,
        on_complete: Optional[Callable[[RenderResult], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.session = session
        self.delay_s = delay_s
        self._on_complete = on_complete
        self._on_error = on_error
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def request(self, request: RenderRequest, rng: Optional[random.Random] = None) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay_s, self._run, args=(request, rng))
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the most recently scheduled render has finished or been cancelled."""
        with self._lock:
            timer = self._timer
        if timer is not None:
            timer.join(timeout)

    def _run(self, request: RenderRequest, rng: Optional[random.Random]) -> None:
        try:
            result = self.session.render(request, rng)
        except Exception as exc:
            log.exception("render failed")
            if self._on_error is not None:
                self._on_error(exc)
            return
        if result is not None and self._on_complete is not None:
            self._on_complete(result)
