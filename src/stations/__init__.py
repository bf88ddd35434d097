"""Stations package - feed loading, normalization and partner grouping."""

from stations.feed import (
    fetch_station_records,
    load_station_records,
    parse_station_records,
)
from stations.grouping import PartnerGroups, group_by_partner
from stations.normalizer import (
    is_valid_lng_lat,
    normalize,
    normalize_all,
    parse_float,
)

__all__ = [
    'PartnerGroups',
    'fetch_station_records',
    'group_by_partner',
    'is_valid_lng_lat',
    'load_station_records',
    'normalize',
    'normalize_all',
    'parse_float',
    'parse_station_records',
]
