"""Services package - station map pipeline."""

from services.station_map_service import (
    StationMapResult,
    StationMapService,
    generate_station_map,
)

__all__ = [
    'StationMapResult',
    'StationMapService',
    'generate_station_map',
]
