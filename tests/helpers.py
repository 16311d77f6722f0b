from typing import Dict

from PIL import Image, ImageDraw

from tilelab.errors import LoadError
from tilelab.silhouette import SourceImage


def opaque_square(size: int = 64, color=(10, 20, 30)) -> Image.Image:
    return Image.new("RGBA", (size, size), color + (255,))


def disc_on_transparent(size: int = 32, radius: int = 10) -> Image.Image:
    im = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    c = size // 2
    ImageDraw.Draw(im).ellipse([c - radius, c - radius, c + radius, c + radius], fill=(200, 50, 50, 255))
    return im


class DictFetcher:
    """Serves pre-built images by name and counts fetches; unknown names fail."""

    def __init__(self, images: Dict[str, Image.Image]):
        self.images = images
        self.calls: Dict[str, int] = {}

    def __call__(self, source: str) -> SourceImage:
        self.calls[source] = self.calls.get(source, 0) + 1
        if source not in self.images:
            raise LoadError(source, "not found")
        return SourceImage.from_image(source, self.images[source])
