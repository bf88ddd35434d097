"""
Station record validation and conversion to point features.

Records with unusable coordinates are dropped silently: they simply do not
appear in the resulting collection.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable
from typing import Any

from domain.models import FeatureCollection, StationFeature, StationRecord

logger = logging.getLogger(__name__)

# Числовой префикс строки: "50.88abc" -> 50.88, "  -4" -> -4
_FLOAT_PREFIX_RE = re.compile(
    r'[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)',
    re.ASCII,
)


def parse_float(value: Any) -> float:
    """
    Parse a coordinate the lenient way feeds expect.

    Numbers pass through; strings use their longest leading numeric prefix
    (surrounding whitespace ignored). Anything else is NaN.
    """
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return math.nan
    m = _FLOAT_PREFIX_RE.match(value.strip())
    if m is None:
        return math.nan
    token = m.group(0)
    if token.endswith('Infinity'):
        return -math.inf if token.startswith('-') else math.inf
    return float(token)


def is_valid_lng_lat(lng: float, lat: float) -> bool:
    """Non-zero, finite and strictly inside (-180, 180) x (-90, 90)."""
    if not (math.isfinite(lng) and math.isfinite(lat)):
        return False
    if lng == 0 or lat == 0:
        return False
    return -180 < lng < 180 and -90 < lat < 90  # noqa: PLR2004


def station_name(partner: str, city: str) -> str:
    return f'{partner} {city.lower()}'


def normalize(record: StationRecord) -> StationFeature | None:
    """Конвертирует запись в признак; при невалидных координатах возвращает None."""
    lng = parse_float(record.lng)
    lat = parse_float(record.lat)
    if not is_valid_lng_lat(lng, lat):
        logger.debug(
            'Dropping station %r (%s): invalid coordinates lng=%r lat=%r',
            record.partner,
            record.city,
            record.lng,
            record.lat,
        )
        return None
    return StationFeature(
        partner=record.partner,
        name=station_name(record.partner, record.city),
        coordinates=(lng, lat),
        properties=record.raw_fields(),
    )


def normalize_all(records: Iterable[StationRecord]) -> FeatureCollection:
    total = 0
    features: list[StationFeature] = []
    for record in records:
        total += 1
        feature = normalize(record)
        if feature is not None:
            features.append(feature)
    dropped = total - len(features)
    logger.info(
        'Normalized %d stations (%d dropped for invalid coordinates)',
        len(features),
        dropped,
    )
    return FeatureCollection.of(features)
