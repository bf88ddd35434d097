"""Tests for asset decoding."""

import xml.etree.ElementTree as ET

import pytest
from PIL import Image

from imaging.decode import (
    SVG_NS,
    decode_raster,
    force_svg_size,
    from_data_url,
    image_from_data_url,
    rasterize_svg,
    to_data_url,
)

SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" '
    b'xmlns:xlink="http://www.w3.org/1999/xlink" viewBox="0 0 100 100">'
    b'<rect width="100" height="100" fill="#00ff00"/></svg>'
)


def _cairo_available() -> bool:
    try:
        import cairosvg  # noqa: F401
    except (ImportError, OSError):
        return False
    return True


class TestDataUrl:
    """Tests for data: URL helpers."""

    def test_to_and_from(self):
        url = to_data_url(b'\x89PNG', 'image/png')
        assert url.startswith('data:image/png;base64,')
        assert from_data_url(url) == ('image/png', b'\x89PNG')

    @pytest.mark.parametrize(
        'url',
        [
            'https://assets.test/logo.png',
            'data:image/png,plain',
            'data:image/png;base64',
            'data:image/png;base64,@@@',
        ],
    )
    def test_invalid(self, url):
        with pytest.raises(ValueError):
            from_data_url(url)


class TestForceSvgSize:
    """Tests for force_svg_size."""

    def test_sets_dimensions(self):
        root = ET.fromstring(force_svg_size(SVG, 20, 20))
        assert root.tag == f'{{{SVG_NS}}}svg'
        assert root.get('width') == '20'
        assert root.get('height') == '20'
        assert root.get('viewBox') == '0 0 100 100'

    def test_keeps_default_namespace_prefix(self):
        out = force_svg_size(SVG.decode('utf-8'), 35, 48)
        assert b'ns0:' not in out
        assert b'<svg' in out

    def test_invalid_svg(self):
        with pytest.raises(RuntimeError):
            force_svg_size(b'<svg', 20, 20)


class TestDecodeRaster:
    """Tests for decode_raster."""

    def test_png_to_rgba(self, png_factory):
        img = decode_raster(png_factory((8, 6), (1, 2, 3, 255)))
        assert img.mode == 'RGBA'
        assert img.size == (8, 6)
        assert img.getpixel((0, 0)) == (1, 2, 3, 255)

    def test_garbage(self):
        with pytest.raises(RuntimeError):
            decode_raster(b'not an image')

    def test_image_from_png_data_url(self, png_factory):
        url = to_data_url(png_factory((20, 20), (9, 9, 9, 255)), 'image/png')
        img = image_from_data_url(url, (20, 20))
        assert isinstance(img, Image.Image)
        assert img.size == (20, 20)


@pytest.mark.skipif(not _cairo_available(), reason='cairo library is not installed')
class TestRasterizeSvg:
    """Tests for SVG rasterization."""

    def test_fixed_output_size(self):
        img = rasterize_svg(force_svg_size(SVG, 20, 20), 20, 20)
        assert img.size == (20, 20)
        assert img.getpixel((10, 10)) == (0, 255, 0, 255)

    def test_svg_data_url(self):
        img = image_from_data_url(to_data_url(SVG, 'image/svg+xml'), (35, 48))
        assert img.size == (35, 48)

    def test_broken_svg(self):
        with pytest.raises(RuntimeError):
            rasterize_svg(b'<svg', 20, 20)
