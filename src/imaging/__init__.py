"""Imaging package - asset decoding and composite partner markers."""

from imaging.decode import (
    decode_raster,
    force_svg_size,
    from_data_url,
    image_from_data_url,
    rasterize_svg,
    to_data_url,
)
from imaging.marker import (
    CompositeMarkerImage,
    MarkerSession,
    MarkerSurface,
    default_logo_offset,
)

__all__ = [
    'CompositeMarkerImage',
    'MarkerSession',
    'MarkerSurface',
    'decode_raster',
    'default_logo_offset',
    'force_svg_size',
    'from_data_url',
    'image_from_data_url',
    'rasterize_svg',
    'to_data_url',
]
