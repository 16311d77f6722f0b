import logging
import random

import pytest

from tilelab.loader import ImageCache
from tilelab.pipeline import RenderSession

from .helpers import DictFetcher, disc_on_transparent, opaque_square


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def fetcher():
    return DictFetcher({
        "a.png": opaque_square(64, (255, 0, 0)),
        "b.png": opaque_square(64, (0, 255, 0)),
        "c.png": opaque_square(64, (0, 0, 255)),
        "d.png": opaque_square(64, (9, 9, 9)),
        "disc.png": disc_on_transparent(),
    })


@pytest.fixture
def session(fetcher):
    return RenderSession(images=ImageCache(fetch=fetcher), rng_factory=lambda: random.Random(7))


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("tilelab")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
