"""PNG export of a rendered buffer."""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image

from .errors import EmptyExportError

log = logging.getLogger(__name__)

DEFAULT_BASENAME = "tiled-background"


def has_content(buffer: Image.Image) -> bool:
    """True if at least one pixel is not fully transparent."""
    if buffer.width == 0 or buffer.height == 0:
        return False
    if "A" not in buffer.getbands():
        return True
    alpha = np.asarray(buffer.getchannel("A"))
    return bool(alpha.any())


def _check(buffer: Optional[Image.Image]) -> Image.Image:
    if buffer is None or not has_content(buffer):
        raise EmptyExportError("Export failed: canvas appears to be empty")
    return buffer


def encode_png(buffer: Image.Image) -> bytes:
    out = io.BytesIO()
    _check(buffer).save(out, format="PNG", optimize=True)
    return out.getvalue()


def default_filename(now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
    return f"{DEFAULT_BASENAME}-{stamp}.png"


def export_png(buffer: Optional[Image.Image], path: Union[str, Path]) -> Path:
    """Write ``buffer`` as PNG to ``path``; a directory gets a timestamped filename.

    Raises EmptyExportError (and writes nothing) for an empty buffer.
    """
    data = encode_png(_check(buffer))
    target = Path(path)
    if target.is_dir():
        target = target / default_filename()
    target.write_bytes(data)
    log.info("exported %dx%d PNG to %s (%d bytes)", buffer.width, buffer.height, target, len(data))
    return target
