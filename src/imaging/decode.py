"""Decoding of marker and logo assets into RGBA rasters."""

from __future__ import annotations

import base64
import binascii
import logging
import xml.etree.ElementTree as ET
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from shared.constants import SVG_MIME

logger = logging.getLogger(__name__)

SVG_NS = 'http://www.w3.org/2000/svg'
XLINK_NS = 'http://www.w3.org/1999/xlink'

# Без регистрации ElementTree переименует пространства имён в ns0/ns1
ET.register_namespace('', SVG_NS)
ET.register_namespace('xlink', XLINK_NS)


def force_svg_size(svg: str | bytes, width: int, height: int) -> bytes:
    """
    Set explicit ``width``/``height`` on the root ``<svg>`` element.

    The logo is then rasterized at a fixed scale whatever its intrinsic
    viewBox is.
    """
    try:
        root = ET.fromstring(svg)
    except ET.ParseError as e:
        msg = f'Некорректный SVG: {e}'
        raise RuntimeError(msg) from e
    root.set('width', str(width))
    root.set('height', str(height))
    return ET.tostring(root, encoding='utf-8')


def rasterize_svg(svg: bytes, width: int, height: int) -> Image.Image:
    # cairosvg загружает системную libcairo при импорте
    try:
        import cairosvg
    except (ImportError, OSError) as e:
        msg = f'cairosvg недоступен: {e}'
        raise RuntimeError(msg) from e
    try:
        png = cairosvg.svg2png(
            bytestring=svg,
            output_width=width,
            output_height=height,
        )
    except Exception as e:
        msg = f'Не удалось растеризовать SVG: {e}'
        raise RuntimeError(msg) from e
    return decode_raster(png)


def decode_raster(data: bytes) -> Image.Image:
    """Decode PNG/JPEG (or anything Pillow reads) into RGBA."""
    try:
        with Image.open(BytesIO(data)) as img:
            return img.convert('RGBA')
    except (UnidentifiedImageError, OSError) as e:
        msg = f'Не удалось декодировать изображение: {e}'
        raise RuntimeError(msg) from e


def to_data_url(data: bytes, mime: str) -> str:
    return f'data:{mime};base64,{base64.b64encode(data).decode("ascii")}'


def from_data_url(url: str) -> tuple[str, bytes]:
    """Split a base64 ``data:`` URL into (mime, payload)."""
    header, sep, payload = url.partition(',')
    if not sep or not header.startswith('data:') or not header.endswith(';base64'):
        msg = 'Expected a base64 data: URL'
        raise ValueError(msg)
    mime = header[len('data:') : -len(';base64')]
    try:
        return mime, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        msg = f'Invalid base64 payload: {e}'
        raise ValueError(msg) from e


def image_from_data_url(url: str, size: tuple[int, int]) -> Image.Image:
    """Decode an inline image source; SVG is rasterized at ``size``."""
    mime, data = from_data_url(url)
    if mime == SVG_MIME:
        return rasterize_svg(data, *size)
    return decode_raster(data)
