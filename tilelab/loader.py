"""Fetch and decode source images from URLs or local paths."""

import http.client
import io
import logging
import threading
import urllib.error
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from .errors import LoadError
from .silhouette import SourceImage

log = logging.getLogger(__name__)

USER_AGENT = "tilelab"
DEFAULT_TIMEOUT_S = 30
DEFAULT_WORKERS = 4

Fetcher = Callable[[str], SourceImage]


def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def _read_bytes(source: str, timeout_s: float) -> bytes:
    if _is_url(source):
        try:
            req = urllib.request.Request(source, headers={"User-Agent": USER_AGENT})
            with urllib.request.urlopen(req, timeout=timeout_s) as resp:
                return resp.read()
        except urllib.error.HTTPError as exc:
            raise LoadError(source, f"HTTP {exc.code}") from exc
        except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as exc:
            raise LoadError(source, str(exc)) from exc
    try:
        return Path(source).expanduser().read_bytes()
    except (OSError, ValueError) as exc:
        raise LoadError(source, str(exc)) from exc


def decode_image(source: str, data: bytes) -> SourceImage:
    try:
        with Image.open(io.BytesIO(data)) as im:
            im.load()
            return SourceImage.from_image(source, im.convert("RGBA"))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise LoadError(source, f"cannot decode image ({exc})") from exc


def load_image(source: str, timeout_s: float = DEFAULT_TIMEOUT_S) -> SourceImage:
    """Load one image from an http(s) URL or a filesystem path.

    Any fetch or decode failure is raised as LoadError.
    """
    return decode_image(source, _read_bytes(source, timeout_s))


class ImageCache:
    """Decoded images keyed by URL; each URL is fetched at most once while cached."""

    def __init__(self, fetch: Fetcher = load_image, workers: int = DEFAULT_WORKERS):
        self._fetch = fetch
        self._workers = max(1, workers)
        self._images: Dict[str, SourceImage] = {}
        self._lock = threading.Lock()

    def __contains__(self, source: str) -> bool:
        with self._lock:
            return source in self._images

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)

    def get(self, source: str) -> Optional[SourceImage]:
        with self._lock:
            return self._images.get(source)

    def invalidate(self, source: str) -> None:
        """Forget ``source`` so the next batch reloads it."""
        with self._lock:
            self._images.pop(source, None)

    def retain(self, sources: Sequence[str]) -> None:
        """Drop every cached image not in ``sources``."""
        keep = set(sources)
        with self._lock:
            for key in [k for k in self._images if k not in keep]:
                del self._images[key]

    def load_all(self, sources: Sequence[str]) -> Tuple[List[SourceImage], List[LoadError]]:
        """Load ``sources`` concurrently, in order, skipping failures.

        Returns the loaded images (input order, duplicates collapsed) and the
        errors for the sources that failed.
        """
        ordered = list(dict.fromkeys(sources))
        self.retain(ordered)
        missing = [s for s in ordered if s not in self]

        errors: List[LoadError] = []
        if missing:
            with ThreadPoolExecutor(max_workers=min(self._workers, len(missing))) as executor:
                futures = {s: executor.submit(self._fetch, s) for s in missing}
                for source, future in futures.items():
                    try:
                        image = future.result()
                    except LoadError as exc:
                        log.warning("%s", exc)
                        errors.append(exc)
                        continue
                    except Exception as exc:
                        log.warning("unexpected failure loading %s", source, exc_info=True)
                        errors.append(LoadError(source, str(exc)))
                        continue
                    with self._lock:
                        self._images[source] = image

        loaded = [img for img in (self.get(s) for s in ordered) if img is not None]
        return loaded, errors
