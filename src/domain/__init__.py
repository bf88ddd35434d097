"""Domain layer - station models, settings and profiles."""
from domain.models import (
    FeatureCollection,
    MapSettings,
    MarkerSize,
    StationFeature,
    StationRecord,
)
from domain.partners import LogoAsset, get_logo_file_extension, logo_asset
from domain.profiles import load_profile, save_profile

__all__ = [
    'FeatureCollection',
    'LogoAsset',
    'MapSettings',
    'MarkerSize',
    'StationFeature',
    'StationRecord',
    'get_logo_file_extension',
    'load_profile',
    'logo_asset',
    'save_profile',
]
