import io
import urllib.error
import urllib.request

import pytest
from PIL import Image

from tilelab.errors import LoadError
from tilelab.loader import ImageCache, decode_image, load_image

from .helpers import DictFetcher, opaque_square


def png_bytes(im):
    out = io.BytesIO()
    im.save(out, format="PNG")
    return out.getvalue()


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


def test_load_local_file(tmp_path):
    path = tmp_path / "sq.png"
    Image.new("RGB", (5, 3), (1, 2, 3)).save(path)
    src = load_image(str(path))
    assert src.source == str(path)
    assert src.image.mode == "RGBA"
    assert (src.width, src.height) == (5, 3)


def test_missing_file_raises_load_error(tmp_path):
    with pytest.raises(LoadError) as info:
        load_image(str(tmp_path / "nope.png"))
    assert info.value.source.endswith("nope.png")


def test_undecodable_bytes_raise_load_error():
    with pytest.raises(LoadError):
        decode_image("junk", b"definitely not an image")


def test_http_success(monkeypatch):
    data = png_bytes(opaque_square(8))
    seen = {}

    def fake_urlopen(req, timeout):
        seen["url"] = req.full_url
        seen["timeout"] = timeout
        return FakeResponse(data)

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    src = load_image("https://example.com/sq.png", timeout_s=5)
    assert (src.width, src.height) == (8, 8)
    assert seen == {"url": "https://example.com/sq.png", "timeout": 5}


def test_http_failure(monkeypatch):
    def fake_urlopen(req, timeout):
        raise urllib.error.URLError("no route")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(LoadError):
        load_image("http://example.com/x.png")


def test_http_error_status(monkeypatch):
    def fake_urlopen(req, timeout):
        raise urllib.error.HTTPError(req.full_url, 404, "Not Found", {}, None)

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(LoadError) as info:
        load_image("http://example.com/x.png")
    assert info.value.reason == "HTTP 404"


class TestImageCache:

    def test_order_kept_and_duplicates_collapsed(self, fetcher):
        cache = ImageCache(fetch=fetcher)
        loaded, errors = cache.load_all(["b.png", "a.png", "b.png"])
        assert [s.source for s in loaded] == ["b.png", "a.png"]
        assert errors == []
        assert fetcher.calls == {"b.png": 1, "a.png": 1}

    def test_failures_do_not_abort_the_batch(self, fetcher):
        cache = ImageCache(fetch=fetcher)
        loaded, errors = cache.load_all(["x.png", "a.png", "y.png"])
        assert [s.source for s in loaded] == ["a.png"]
        assert sorted(e.source for e in errors) == ["x.png", "y.png"]

    def test_failed_sources_are_retried(self):
        fetcher = DictFetcher({})
        cache = ImageCache(fetch=fetcher)
        cache.load_all(["late.png"])
        fetcher.images["late.png"] = opaque_square(4)
        loaded, _ = cache.load_all(["late.png"])
        assert len(loaded) == 1
        assert fetcher.calls["late.png"] == 2

    def test_invalidate_forces_reload(self, fetcher):
        cache = ImageCache(fetch=fetcher)
        cache.load_all(["a.png"])
        cache.invalidate("a.png")
        cache.load_all(["a.png"])
        assert fetcher.calls["a.png"] == 2

    @pytest.mark.parametrize("bad", [
        "http://example.com:abc/x.png",
        "http://[::1/x.png",
        "bad\x00name.png",
    ])
    def test_malformed_source_is_isolated(self, tmp_path, bad):
        good = tmp_path / "ok.png"
        opaque_square(4).save(good)
        loaded, errors = ImageCache().load_all([str(good), bad])
        assert [s.source for s in loaded] == [str(good)]
        assert len(errors) == 1
        assert errors[0].source == bad

    def test_unexpected_fetch_error_becomes_load_error(self, fetcher):
        def flaky(source):
            if source == "boom.png":
                raise RuntimeError("boom")
            return fetcher(source)

        loaded, errors = ImageCache(fetch=flaky).load_all(["boom.png", "a.png"])
        assert [s.source for s in loaded] == ["a.png"]
        assert isinstance(errors[0], LoadError)
        assert errors[0].reason == "boom"
