import json

import pytest
from PIL import Image

from tilelab.cli import main

from .helpers import disc_on_transparent, opaque_square


@pytest.fixture
def images(tmp_path):
    a = tmp_path / "a.png"
    b = tmp_path / "b.png"
    opaque_square(32).save(a)
    disc_on_transparent(40, 15).save(b)
    return [str(a), str(b)]


def test_render_to_file(images, tmp_path, capsys):
    out = tmp_path / "bg.png"
    rc = main(["--out", str(out), "--image", images[0], "--image", images[1], "--seed", "3", "--grid", "5"])
    assert rc == 0
    assert capsys.readouterr().out.strip() == str(out)
    with Image.open(out) as im:
        assert im.size == (2560, 1440)


def test_seed_makes_output_reproducible(images, tmp_path):
    args = ["--image", images[0], "--image", images[1], "--seed", "11", "--density", "50"]
    main(["--out", str(tmp_path / "one.png")] + args)
    main(["--out", str(tmp_path / "two.png")] + args)
    assert (tmp_path / "one.png").read_bytes() == (tmp_path / "two.png").read_bytes()


def test_config_file_and_preview(images, tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"images": images, "backgroundColor": "#222222", "gridSize": 4}), encoding="utf-8")
    out, preview = tmp_path / "bg.png", tmp_path / "preview.png"
    assert main(["--out", str(out), "--config", str(cfg), "--preview", str(preview), "--seed", "1"]) == 0
    assert out.read_bytes() == preview.read_bytes()


def test_images_file(images, tmp_path):
    listing = tmp_path / "images.txt"
    listing.write_text("# sources\n" + "\n".join(images) + "\n\n", encoding="utf-8")
    assert main(["--out", str(tmp_path / "bg.png"), "--images-file", str(listing)]) == 0


def test_unloadable_images_still_export_background(tmp_path):
    out = tmp_path / "bg.png"
    assert main(["--out", str(out), "--image", str(tmp_path / "missing.png")]) == 0
    with Image.open(out) as im:
        assert im.convert("RGB").getpixel((0, 0)) == (184, 212, 160)


def test_no_images_is_a_usage_error(tmp_path):
    with pytest.raises(SystemExit) as info:
        main(["--out", str(tmp_path / "bg.png")])
    assert info.value.code == 2


def test_invalid_setting_is_a_usage_error(images, tmp_path):
    with pytest.raises(SystemExit) as info:
        main(["--out", str(tmp_path / "bg.png"), "--image", images[0], "--density", "150"])
    assert info.value.code == 2


@pytest.mark.parametrize("value", ["nan", "inf"])
def test_non_finite_scale_is_a_usage_error(images, tmp_path, value):
    with pytest.raises(SystemExit) as info:
        main(["--out", str(tmp_path / "bg.png"), "--image", images[0], "--scale", value])
    assert info.value.code == 2


def test_non_finite_config_value_is_a_usage_error(images, tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text('{"images": ["%s"], "spacing": Infinity}' % images[0].replace("\\", "/"), encoding="utf-8")
    with pytest.raises(SystemExit) as info:
        main(["--out", str(tmp_path / "bg.png"), "--config", str(cfg)])
    assert info.value.code == 2


def test_package_usage_is_a_plain_code_block():
    import tilelab

    assert ">>>" not in tilelab.__doc__
    for name in ("LayoutConfig", "RenderRequest", "RenderSession"):
        assert hasattr(tilelab, name)
