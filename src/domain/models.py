from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from geojson import Feature, FeatureCollection as GeoJSONFeatureCollection, Point
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shared.constants import (
    ASSET_BASE_URL,
    CLUSTER_MAX_ZOOM,
    CLUSTER_RADIUS_PX,
    COMPOSE_TIMEOUT_S,
    DEFAULT_MAP_CENTER,
    DEFAULT_MAP_STYLE,
    DEFAULT_MAP_ZOOM,
    DEFAULT_OUTPUT_PATH,
    HTTP_RETRIES_DEFAULT,
    HTTP_TIMEOUT_DEFAULT,
    ICON_PROPERTY,
    IMAGE_NAME_SUFFIX,
    LOGO_SIZE_PX,
    MARKER_HEIGHT_PX,
    MARKER_URL,
    MARKER_WIDTH_PX,
    MAX_MAP_ZOOM,
    STATION_FEED_URL,
)


class StationRecord(BaseModel):
    """Запись станции из ленты; неизвестные поля сохраняются как есть."""

    model_config = ConfigDict(extra='allow')

    partner: str = ''
    city: str = ''
    street: str = ''
    zip: str = ''
    lat: str | float | None = None
    lng: str | float | None = None

    @field_validator('partner', 'city', 'street', 'zip', mode='before')
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        if v is None:
            return ''
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def raw_fields(self) -> dict[str, Any]:
        return self.model_dump()


def icon_name_for(partner: str) -> str:
    return f'{partner}{IMAGE_NAME_SUFFIX}'


@dataclass(frozen=True)
class StationFeature:
    """Валидная точка станции; coordinates = (lon, lat)."""

    partner: str
    name: str
    coordinates: tuple[float, float]
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Снимок полей записи, чтобы признак не менялся после создания
        object.__setattr__(
            self, 'properties', MappingProxyType(dict(self.properties))
        )

    @property
    def lng(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]

    @property
    def icon_name(self) -> str:
        return icon_name_for(self.partner)

    def display_properties(self) -> dict[str, Any]:
        # Поля записи перекрывают вычисленное имя, как в исходной ленте
        return {'name': self.name, **self.properties}

    def to_geojson(self, extra: Mapping[str, Any] | None = None) -> Feature:
        props = self.display_properties()
        props[ICON_PROPERTY] = self.icon_name
        if extra:
            props.update(extra)
        return Feature(
            geometry=Point(self.coordinates, precision=15), properties=props
        )


@dataclass(frozen=True)
class FeatureCollection:
    """Упорядоченный неизменяемый набор признаков (порядок ввода, без дедупликации)."""

    features: tuple[StationFeature, ...] = ()

    @classmethod
    def of(cls, features: Iterable[StationFeature]) -> FeatureCollection:
        return cls(tuple(features))

    def __iter__(self) -> Iterator[StationFeature]:
        return iter(self.features)

    def __len__(self) -> int:
        return len(self.features)

    def __getitem__(self, idx: int) -> StationFeature:
        return self.features[idx]

    @property
    def partners(self) -> tuple[str, ...]:
        """Distinct partner identifiers in first-appearance order."""
        return tuple(dict.fromkeys(f.partner for f in self.features))

    def to_geojson(
        self,
        enrich: Callable[[StationFeature], Mapping[str, Any]] | None = None,
    ) -> GeoJSONFeatureCollection:
        """
        GeoJSON FeatureCollection.

        Args:
            enrich: Optional callback returning extra properties for a feature.

        """
        return GeoJSONFeatureCollection(
            [f.to_geojson(enrich(f) if enrich else None) for f in self.features]
        )


class MarkerSize(BaseModel):
    width: int = MARKER_WIDTH_PX
    height: int = MARKER_HEIGHT_PX

    @field_validator('width', 'height')
    @classmethod
    def validate_min_size(cls, v: int) -> int:
        if v < LOGO_SIZE_PX:
            msg = f'Размер маркера не может быть меньше логотипа ({LOGO_SIZE_PX} px)'
            raise ValueError(msg)
        return v

    def as_tuple(self) -> tuple[int, int]:
        return self.width, self.height


class MapSettings(BaseModel):
    """
    Параметры построения карты станций.

    Распознаются как snake_case имена, так и ключи clusterZoom,
    clusterRadius и markerSize.
    """

    model_config = ConfigDict(
        extra='ignore',
        populate_by_name=True,
    )

    # Зум, на котором кластеры распадаются
    cluster_zoom: int = Field(default=CLUSTER_MAX_ZOOM, alias='clusterZoom')
    # Радиус объединения точек (px)
    cluster_radius: int = Field(default=CLUSTER_RADIUS_PX, alias='clusterRadius')
    # Размер композитного маркера
    marker_size: MarkerSize = Field(default_factory=MarkerSize, alias='markerSize')

    # Источники данных
    feed_url: str = STATION_FEED_URL
    asset_base_url: str = ASSET_BASE_URL
    marker_url: str = MARKER_URL

    # Начальный вид карты
    center_lng: float = DEFAULT_MAP_CENTER[0]
    center_lat: float = DEFAULT_MAP_CENTER[1]
    zoom: float = DEFAULT_MAP_ZOOM
    style_url: str = DEFAULT_MAP_STYLE
    geocoder_enabled: bool = True

    # Точка отсчёта расстояний (если известно местоположение пользователя)
    origin_lng: float | None = None
    origin_lat: float | None = None

    output_path: str = DEFAULT_OUTPUT_PATH

    # Сеть
    http_timeout_s: float = HTTP_TIMEOUT_DEFAULT
    http_retries: int = HTTP_RETRIES_DEFAULT
    compose_timeout_s: float = COMPOSE_TIMEOUT_S

    @field_validator('cluster_zoom')
    @classmethod
    def validate_cluster_zoom(cls, v: int) -> int:
        if not (0 <= v <= MAX_MAP_ZOOM):
            msg = f'clusterZoom должен быть в диапазоне [0, {MAX_MAP_ZOOM}]'
            raise ValueError(msg)
        return v

    @field_validator('cluster_radius', 'http_retries')
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            msg = 'Значение должно быть положительным'
            raise ValueError(msg)
        return v

    @field_validator('http_timeout_s', 'compose_timeout_s')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            msg = 'Таймаут должен быть больше нуля'
            raise ValueError(msg)
        return v

    @model_validator(mode='after')
    def validate_origin(self) -> MapSettings:
        if (self.origin_lng is None) != (self.origin_lat is None):
            msg = 'origin_lng и origin_lat задаются только вместе'
            raise ValueError(msg)
        return self

    @property
    def center(self) -> tuple[float, float]:
        return self.center_lng, self.center_lat

    @property
    def origin(self) -> tuple[float, float] | None:
        if self.origin_lng is None or self.origin_lat is None:
            return None
        return self.origin_lng, self.origin_lat
