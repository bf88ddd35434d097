"""Great-circle distance and longitude wrapping."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from shared.constants import EARTH_RADIUS_M

_LAT_KEYS = ('lat', 'latitude')
_LNG_KEYS = ('lng', 'lon', 'longitude')


def _pick(point: Any, keys: tuple[str, ...]) -> float:
    for key in keys:
        if isinstance(point, Mapping):
            if key in point:
                return float(point[key])
        elif hasattr(point, key):
            return float(getattr(point, key))
    msg = f'Point has none of the keys {keys}: {point!r}'
    raise ValueError(msg)


def lng_lat_of(point: Any) -> tuple[float, float]:
    """
    Приводит точку к паре (lon, lat).

    Принимает пару (lon, lat) или объект/словарь с полями
    lat/latitude и lng/lon/longitude.
    """
    if isinstance(point, Sequence) and not isinstance(point, str):
        if len(point) != 2:  # noqa: PLR2004
            msg = f'Expected (lon, lat) pair, got {point!r}'
            raise ValueError(msg)
        return float(point[0]), float(point[1])
    return _pick(point, _LNG_KEYS), _pick(point, _LAT_KEYS)


def distance_meters(a: Any, b: Any, radius_m: float = EARTH_RADIUS_M) -> float:
    """Haversine distance between two points, in meters."""
    lng1, lat1 = lng_lat_of(a)
    lng2, lat2 = lng_lat_of(b)

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)

    h = (
        math.sin(dphi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2.0) ** 2
    )
    # Ограничение против дрейфа у антиподов
    h = min(1.0, max(0.0, h))
    return 2.0 * radius_m * math.asin(math.sqrt(h))


def wrap_longitude_near(lng: float, pointer_lng: float) -> float:
    """Shift ``lng`` by multiples of 360 until it lies within 180 of ``pointer_lng``."""
    while abs(pointer_lng - lng) > 180:  # noqa: PLR2004
        lng += 360 if pointer_lng > lng else -360
    return lng
