"""Geo module - great-circle distance and longitude helpers."""

from .geodesy import distance_meters, lng_lat_of, wrap_longitude_near

__all__ = [
    'distance_meters',
    'lng_lat_of',
    'wrap_longitude_near',
]
