"""
Map-rendering engine contract and a recording implementation.

The engine itself (tiles, styling, event dispatch) is external. ``MapEngine``
is the surface the pipeline drives; ``StyleDocument`` records every call,
enforces registration order and renders a standalone Mapbox GL JS page.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from jinja2 import Template
from PIL import Image

from imaging.decode import image_from_data_url, to_data_url
from shared.constants import (
    DEFAULT_MAP_CENTER,
    DEFAULT_MAP_STYLE,
    DEFAULT_MAP_ZOOM,
    MAPBOX_GEOCODER_VERSION,
    MAPBOX_GL_VERSION,
    MARKER_HEIGHT_PX,
    MARKER_WIDTH_PX,
)

if TYPE_CHECKING:
    from domain.models import MapSettings

logger = logging.getLogger(__name__)

# Ключ метаданных слоя: имя изображения, которое слой использует
ICON_METADATA_KEY = 'station-map:icon'

Handler = Callable[[Any], Any]


@dataclass(frozen=True)
class ClickEvent:
    """Pointer position and the rendered features under it."""

    lng_lat: tuple[float, float]
    features: tuple[Mapping[str, Any], ...]


@dataclass(frozen=True)
class Popup:
    lng_lat: tuple[float, float]
    html: str


class MapEngine(Protocol):
    def add_source(self, source_id: str, source: Mapping[str, Any]) -> None: ...

    def add_layer(self, layer: Mapping[str, Any]) -> None: ...

    def add_image(self, name: str, image: Image.Image) -> None: ...

    def remove_image(self, name: str) -> None: ...

    def has_image(self, name: str) -> bool: ...

    async def load_image(self, url: str) -> Image.Image: ...

    def on(self, event: str, layer_id: str, handler: Handler) -> None: ...

    def show_popup(self, popup: Popup) -> None: ...

    def set_cursor(self, cursor: str) -> None: ...

    def add_control(
        self, name: str, options: Mapping[str, Any] | None = None
    ) -> None: ...


_PAGE_TEMPLATE = Template(
    """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{{ title }}</title>
  <meta name="viewport" content="initial-scale=1,maximum-scale=1,user-scalable=no">
  <link href="https://api.mapbox.com/mapbox-gl-js/{{ gl_version }}/mapbox-gl.css" rel="stylesheet">
  <script src="https://api.mapbox.com/mapbox-gl-js/{{ gl_version }}/mapbox-gl.js"></script>
{%- if geocoder is not none %}
  <link href="https://api.mapbox.com/mapbox-gl-js/plugins/mapbox-gl-geocoder/{{ geocoder_version }}/mapbox-gl-geocoder.css" rel="stylesheet">
  <script src="https://api.mapbox.com/mapbox-gl-js/plugins/mapbox-gl-geocoder/{{ geocoder_version }}/mapbox-gl-geocoder.min.js"></script>
{%- endif %}
  <style>
    body { margin: 0; padding: 0; }
    #map { position: absolute; top: 0; bottom: 0; width: 100%; }
    .station-popup__logo { width: 40px; height: 40px; object-fit: contain; }
  </style>
</head>
<body>
<div id="map"></div>
<script>
  mapboxgl.accessToken = {{ access_token|tojson }};
  const map = new mapboxgl.Map({
    container: 'map',
    style: {{ style_url|tojson }},
    center: {{ center|tojson }},
    zoom: {{ zoom|tojson }}
  });
{%- if geocoder is not none %}
  map.addControl(new MapboxGeocoder(Object.assign(
    { accessToken: mapboxgl.accessToken, mapboxgl: mapboxgl },
    {{ geocoder|tojson }}
  )));
{%- endif %}
  const images = {{ images|tojson }};
  const sources = {{ sources|tojson }};
  const layers = {{ layers|tojson }};
  const handlers = {{ handlers|tojson }};
  const loadImage = (url) => new Promise((resolve, reject) =>
    map.loadImage(url, (error, image) => error ? reject(error) : resolve(image)));

  map.on('load', async () => {
    for (const [name, url] of Object.entries(images)) {
      map.addImage(name, await loadImage(url));
    }
    for (const [id, spec] of Object.entries(sources)) {
      map.addSource(id, spec);
    }
    for (const layer of layers) {
      map.addLayer(layer);
    }
    for (const [event, layerId] of handlers) {
      if (event === 'click') {
        map.on('click', layerId, (e) => {
          const feature = e.features[0];
          const coordinates = feature.geometry.coordinates.slice();
          while (Math.abs(e.lngLat.lng - coordinates[0]) > 180) {
            coordinates[0] += e.lngLat.lng > coordinates[0] ? 360 : -360;
          }
          new mapboxgl.Popup()
            .setLngLat(coordinates)
            .setHTML(feature.properties.popup)
            .addTo(map);
        });
      } else if (event === 'mouseenter') {
        map.on('mouseenter', layerId, () => { map.getCanvas().style.cursor = 'pointer'; });
      } else if (event === 'mouseleave') {
        map.on('mouseleave', layerId, () => { map.getCanvas().style.cursor = ''; });
      }
    }
  });
</script>
</body>
</html>
"""
)


class StyleDocument:
    """
    In-memory engine: records sources, layers, images and subscriptions.

    Нарушения порядка регистрации (слой ссылается на ещё не добавленное
    изображение или источник, повторные идентификаторы) вызывают ValueError.
    """

    def __init__(
        self,
        *,
        access_token: str = '',
        style_url: str = DEFAULT_MAP_STYLE,
        center: tuple[float, float] = DEFAULT_MAP_CENTER,
        zoom: float = DEFAULT_MAP_ZOOM,
        image_size: tuple[int, int] = (MARKER_WIDTH_PX, MARKER_HEIGHT_PX),
        title: str = 'Stations',
    ):
        self.access_token = access_token
        self.style_url = style_url
        self.center = center
        self.zoom = zoom
        self.image_size = image_size
        self.title = title
        self.sources: dict[str, dict[str, Any]] = {}
        self.layers: list[dict[str, Any]] = []
        self.images: dict[str, Image.Image] = {}
        self.handlers: list[tuple[str, str, Handler]] = []
        self.controls: dict[str, dict[str, Any]] = {}
        self.popups: list[Popup] = []
        self.cursor = ''
        # Журнал вызовов в порядке поступления: (операция, идентификатор)
        self.calls: list[tuple[str, str]] = []

    @classmethod
    def from_settings(
        cls, settings: MapSettings, *, access_token: str = ''
    ) -> StyleDocument:
        return cls(
            access_token=access_token,
            style_url=settings.style_url,
            center=settings.center,
            zoom=settings.zoom,
            image_size=settings.marker_size.as_tuple(),
        )

    def add_source(self, source_id: str, source: Mapping[str, Any]) -> None:
        if source_id in self.sources:
            msg = f'Source {source_id!r} already exists'
            raise ValueError(msg)
        self.sources[source_id] = dict(source)
        self.calls.append(('add_source', source_id))

    def add_layer(self, layer: Mapping[str, Any]) -> None:
        layer_id = layer.get('id')
        if not layer_id:
            msg = 'Layer must have an id'
            raise ValueError(msg)
        if self.get_layer(layer_id) is not None:
            msg = f'Layer {layer_id!r} already exists'
            raise ValueError(msg)
        source_id = layer.get('source')
        if source_id is not None and source_id not in self.sources:
            msg = f'Layer {layer_id!r} references unknown source {source_id!r}'
            raise ValueError(msg)
        icon = (layer.get('metadata') or {}).get(ICON_METADATA_KEY)
        if icon is not None and not self.has_image(icon):
            msg = f'Layer {layer_id!r} references unregistered image {icon!r}'
            raise ValueError(msg)
        self.layers.append(copy.deepcopy(dict(layer)))
        self.calls.append(('add_layer', layer_id))

    def get_layer(self, layer_id: str) -> dict[str, Any] | None:
        return next((lyr for lyr in self.layers if lyr['id'] == layer_id), None)

    def add_image(self, name: str, image: Image.Image) -> None:
        if name in self.images:
            msg = f'Image {name!r} already exists'
            raise ValueError(msg)
        if not isinstance(image, Image.Image):
            msg = f'Image {name!r} must be a PIL image, got {type(image).__name__}'
            raise ValueError(msg)
        self.images[name] = image
        self.calls.append(('add_image', name))

    def remove_image(self, name: str) -> None:
        if self.images.pop(name, None) is not None:
            self.calls.append(('remove_image', name))

    def has_image(self, name: str) -> bool:
        return name in self.images

    async def load_image(self, url: str) -> Image.Image:
        """Decode an inline (data:) image source; remote URLs are not fetched."""
        return image_from_data_url(url, self.image_size)

    def on(self, event: str, layer_id: str, handler: Handler) -> None:
        if self.get_layer(layer_id) is None:
            msg = f'Cannot subscribe to unknown layer {layer_id!r}'
            raise ValueError(msg)
        self.handlers.append((event, layer_id, handler))
        self.calls.append((f'on:{event}', layer_id))

    def dispatch(self, event: str, layer_id: str, payload: Any = None) -> list[Any]:
        """Deliver an event to the handlers subscribed for ``(event, layer_id)``."""
        return [
            handler(payload)
            for ev, lid, handler in self.handlers
            if ev == event and lid == layer_id
        ]

    def show_popup(self, popup: Popup) -> None:
        self.popups.append(popup)

    def set_cursor(self, cursor: str) -> None:
        self.cursor = cursor

    def add_control(self, name: str, options: Mapping[str, Any] | None = None) -> None:
        self.controls[name] = dict(options or {})
        self.calls.append(('add_control', name))

    def to_style(self) -> dict[str, Any]:
        """Sources and layers as a style fragment (deep copies)."""
        return {
            'sources': copy.deepcopy(self.sources),
            'layers': copy.deepcopy(self.layers),
        }

    def _image_urls(self) -> dict[str, str]:
        urls = {}
        for name, image in self.images.items():
            buf = BytesIO()
            image.save(buf, format='PNG')
            urls[name] = to_data_url(buf.getvalue(), 'image/png')
        return urls

    def render_html(self) -> str:
        geocoder = self.controls.get('geocoder')
        return _PAGE_TEMPLATE.render(
            title=self.title,
            gl_version=MAPBOX_GL_VERSION,
            geocoder_version=MAPBOX_GEOCODER_VERSION,
            access_token=self.access_token,
            style_url=self.style_url,
            center=list(self.center),
            zoom=self.zoom,
            geocoder=geocoder,
            images=self._image_urls(),
            **self.to_style(),
            handlers=[[event, layer_id] for event, layer_id, _ in self.handlers],
        )

    def write_html(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render_html(), encoding='utf-8')
        logger.info(
            'Map page written: %s (%d layers, %d images)',
            path,
            len(self.layers),
            len(self.images),
        )
        return path
