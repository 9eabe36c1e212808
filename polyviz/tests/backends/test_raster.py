"""Unit tests for SVG rasterisation with Pillow."""
from io import BytesIO

import pytest
from PIL import Image

from polyviz.backends.raster import path_points, rasterize_svg

MARKUP = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="100" height="50">'
    '<g transform="translate(10,5)">'
    '<rect x="0" y="0" width="20" height="20" style="fill: #ff0000"></rect>'
    '<circle cx="60" cy="20" r="10" fill="#0000ff" stroke="none"></circle>'
    '</g>'
    '<line x1="0" y1="49" x2="99" y2="49" stroke="#00ff00"></line>'
    '</svg>'
)


def open_image(payload):
    return Image.open(BytesIO(payload))


def test_png_draws_shapes_on_transparent_background():
    image = open_image(rasterize_svg(MARKUP, 100, 50))
    assert image.format == "PNG"
    assert image.size == (100, 50)
    image = image.convert("RGBA")
    # the rect is offset by the group translate
    assert image.getpixel((15, 10)) == (255, 0, 0, 255)
    assert image.getpixel((70, 25)) == (0, 0, 255, 255)
    assert image.getpixel((50, 49))[:3] == (0, 255, 0)
    assert image.getpixel((95, 2))[3] == 0


def test_jpeg_has_white_background_by_default():
    image = open_image(rasterize_svg(MARKUP, 100, 50, image_format="JPEG", quality=0.5))
    assert image.format == "JPEG"
    red, green, blue = image.getpixel((95, 2))
    assert min(red, green, blue) > 240


def test_background_and_opacity():
    markup = ('<svg><rect x="0" y="0" width="10" height="10" fill="#000000" '
              'fill-opacity="0.5"></rect></svg>')
    image = open_image(rasterize_svg(markup, 10, 10, background="#ffffff")).convert("RGBA")
    red, _, _, alpha = image.getpixel((5, 5))
    assert alpha == 255
    assert 120 <= red <= 135


def test_unknown_colours_are_skipped():
    markup = '<svg><rect width="10" height="10" fill="url(#gradient)"></rect></svg>'
    image = open_image(rasterize_svg(markup, 10, 10)).convert("RGBA")
    assert image.getpixel((5, 5))[3] == 0


def test_invalid_input():
    with pytest.raises(ValueError, match="Unsupported raster format"):
        rasterize_svg(MARKUP, 10, 10, image_format="webp")
    with pytest.raises(ValueError, match="no <svg>"):
        rasterize_svg("<div></div>", 10, 10)


def test_path_points():
    assert path_points("M0,0L10,0H20V5Z") == [[(0, 0), (10, 0), (20, 0), (20, 5), (0, 0)]]
    curve = path_points("M0,0C0,10 10,10 10,0")[0]
    assert curve[0] == (0, 0)
    assert len(curve) == 17
    assert curve[-1] == pytest.approx((10, 0))
    assert len(path_points("M0,0L1,1M5,5L6,6")) == 2
    with pytest.raises(ValueError, match="Unsupported path data"):
        path_points("M0,0A5,5 0 0 1 10,10")
